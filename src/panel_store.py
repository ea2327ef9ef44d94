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

"""
Flat-file persistence of panel locations.

The JSON file is the single source of truth and is re-read on every access:

    {
      "panels": {
        "<location key>": {"channel_id": "...", "message_id": "...", "updated_at": 1700000000000}
      }
    }

Reads that fail fall back to an empty mapping; writes that fail are logged
and dropped. There is one writer (this process); concurrent writers are not
coordinated.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import os
from pathlib import Path
import time
from typing import Any, Dict, List, Optional, Union

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class PanelRecord:
    """Where the panel for one location key lives."""

    location_key: str
    channel_id: str
    message_id: str
    updated_at: Optional[int] = None


def _empty_state() -> Dict[str, Any]:
    return {"panels": {}}


class PanelStore:
    """Read-modify-write store for PanelRecords keyed by channel or guild id."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        """Read the whole state file. Missing or malformed files yield an empty state."""
        if not self.path.exists():
            return _empty_state()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("panel_state_read_failed", path=str(self.path), error=str(e))
            return _empty_state()

        if not isinstance(data, dict):
            logger.warning("panel_state_malformed", path=str(self.path))
            return _empty_state()
        if not isinstance(data.get("panels"), dict):
            data["panels"] = {}
        return data

    def save(self, state: Dict[str, Any]) -> bool:
        """Rewrite the whole state file. Returns False (and logs) on failure."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("panel_state_write_failed", path=str(self.path), error=str(e))
            return False
        return True

    def get(self, location_key: Union[str, int]) -> Optional[PanelRecord]:
        """Look up the record for a location key."""
        key = str(location_key)
        entry = self.load()["panels"].get(key)
        if not isinstance(entry, dict):
            return None

        # Older files used camelCase and keyed panels by channel only
        message_id = entry.get("message_id", entry.get("messageId"))
        channel_id = entry.get("channel_id", entry.get("channelId", key))
        if not message_id:
            return None

        return PanelRecord(
            location_key=key,
            channel_id=str(channel_id),
            message_id=str(message_id),
            updated_at=entry.get("updated_at", entry.get("updatedAt")),
        )

    def set(
        self,
        location_key: Union[str, int],
        channel_id: Union[str, int],
        message_id: Union[str, int],
    ) -> PanelRecord:
        """Record (overwriting) the panel location for a key."""
        record = PanelRecord(
            location_key=str(location_key),
            channel_id=str(channel_id),
            message_id=str(message_id),
            updated_at=int(time.time() * 1000),
        )

        state = self.load()
        state["panels"][record.location_key] = {
            "channel_id": record.channel_id,
            "message_id": record.message_id,
            "updated_at": record.updated_at,
        }
        if self.save(state):
            logger.debug(
                "panel_record_saved",
                location_key=record.location_key,
                channel_id=record.channel_id,
                message_id=record.message_id,
            )
        return record

    def remove(self, location_key: Union[str, int]) -> bool:
        """Forget a key. Returns True if a record was removed and persisted."""
        state = self.load()
        if state["panels"].pop(str(location_key), None) is None:
            return False
        return self.save(state)

    def keys(self) -> List[str]:
        return list(self.load()["panels"].keys())
