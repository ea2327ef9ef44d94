# Copyright (c) 2025 Stephen Clau
#
# This file is part of MC Status Panel.
#
# MC Status Panel is dual-licensed:
#
# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms
#
# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com
#
# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""Tests for PanelStore persistence."""

import json
from unittest.mock import patch

from panel_store import PanelRecord, PanelStore


class TestPanelStoreLoad:
    def test_missing_file_is_empty(self, panel_store):
        assert panel_store.load() == {"panels": {}}
        assert panel_store.keys() == []

    def test_malformed_json_is_empty(self, tmp_path):
        path = tmp_path / "panel_state.json"
        path.write_text("{not json", encoding="utf-8")

        assert PanelStore(path).load() == {"panels": {}}

    def test_non_object_root_is_empty(self, tmp_path):
        path = tmp_path / "panel_state.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        assert PanelStore(path).load() == {"panels": {}}

    def test_missing_panels_key_is_added(self, tmp_path):
        path = tmp_path / "panel_state.json"
        path.write_text('{"version": 1}', encoding="utf-8")

        state = PanelStore(path).load()
        assert state["panels"] == {}
        assert state["version"] == 1


class TestPanelStoreRecords:
    def test_set_then_get(self, panel_store):
        panel_store.set("222", 222, 9001)

        record = panel_store.get("222")
        assert isinstance(record, PanelRecord)
        assert record.location_key == "222"
        assert record.channel_id == "222"
        assert record.message_id == "9001"
        assert isinstance(record.updated_at, int)

    def test_int_key_is_stringified(self, panel_store):
        panel_store.set(111, 222, 9001)

        assert panel_store.keys() == ["111"]
        assert panel_store.get(111).channel_id == "222"

    def test_set_overwrites(self, panel_store):
        panel_store.set("222", 222, 1)
        panel_store.set("222", 222, 2)

        assert panel_store.get("222").message_id == "2"
        assert panel_store.keys() == ["222"]

    def test_file_layout(self, panel_store):
        panel_store.set("222", 333, 9001)

        data = json.loads(panel_store.path.read_text(encoding="utf-8"))
        entry = data["panels"]["222"]
        assert entry["channel_id"] == "333"
        assert entry["message_id"] == "9001"
        assert "updated_at" in entry

    def test_unknown_key_is_none(self, panel_store):
        assert panel_store.get("nope") is None

    def test_legacy_camel_case_entry(self, tmp_path):
        path = tmp_path / "panel_state.json"
        path.write_text(
            json.dumps({"panels": {"222": {"messageId": "77", "updatedAt": 5}}}),
            encoding="utf-8",
        )

        record = PanelStore(path).get("222")
        assert record.message_id == "77"
        # Channel-keyed legacy entries use the key as channel
        assert record.channel_id == "222"
        assert record.updated_at == 5

    def test_entry_without_message_id_is_none(self, tmp_path):
        path = tmp_path / "panel_state.json"
        path.write_text(json.dumps({"panels": {"222": {"channel_id": "222"}}}), encoding="utf-8")

        assert PanelStore(path).get("222") is None

    def test_remove(self, panel_store):
        panel_store.set("222", 222, 9001)

        assert panel_store.remove("222") is True
        assert panel_store.get("222") is None
        assert panel_store.remove("222") is False

    def test_state_survives_new_instance(self, panel_store):
        panel_store.set("111", 222, 9001)

        reopened = PanelStore(panel_store.path)
        assert reopened.get("111").message_id == "9001"

    def test_creates_parent_directory(self, tmp_path):
        store = PanelStore(tmp_path / "data" / "state" / "panels.json")
        store.set("1", 1, 1)

        assert store.path.exists()


class TestPanelStoreWriteFailures:
    def test_save_failure_returns_false(self, panel_store):
        with patch("panel_store.os.replace", side_effect=OSError("read-only")):
            assert panel_store.save({"panels": {}}) is False

    def test_set_failure_still_returns_record(self, panel_store):
        with patch("panel_store.os.replace", side_effect=OSError("read-only")):
            record = panel_store.set("222", 222, 9001)

        assert record.message_id == "9001"
        # Nothing was persisted
        assert panel_store.get("222") is None
