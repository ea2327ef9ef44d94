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

"""Tests for panel embeds, progress bar and link buttons."""

import discord
import pytest

from embeds import EmbedBuilder, build_link_view, make_bar, normalize_url, panel_links
from status_parser import PlayerCount


class TestNormalizeUrl:
    def test_bare_domain_gets_https(self):
        assert normalize_url("example.net") == "https://example.net"

    def test_existing_scheme_kept(self):
        assert normalize_url("http://example.net") == "http://example.net"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_is_none(self, value):
        assert normalize_url(value) is None


class TestMakeBar:
    def test_half_full(self):
        assert make_bar(5, 10, size=10) == "█" * 5 + "░" * 5

    def test_empty_server(self):
        assert make_bar(0, 20) == "░" * 14

    def test_overfull_is_clamped(self):
        assert make_bar(30, 20) == "█" * 14

    def test_zero_max_does_not_divide_by_zero(self):
        assert make_bar(0, 0) == "░" * 14
        assert make_bar(3, 0) == "█" * 14

    def test_length_is_constant(self):
        assert len(make_bar(7, 13)) == 14


class TestPanelLinks:
    def test_only_configured_links(self, make_config):
        config = make_config(website_url="example.net", store_url=None, modpack_url="")
        assert panel_links(config) == [("🌐 Web", "https://example.net")]

    def test_display_order(self, make_config):
        config = make_config(
            website_url="web.example.net",
            store_url="store.example.net",
            modpack_url="modpack.example.net",
            discord_invite_url="discord.gg/example",
        )
        labels = [label for label, _ in panel_links(config)]
        assert labels == ["💜 Discord", "🌐 Web", "🛒 Store", "📦 Modpack"]


class TestPanelEmbed:
    def test_known_counts(self, config, known_counts):
        embed = EmbedBuilder.panel_embed(config, known_counts)

        assert embed.title == "📡 Example SMP"
        assert "`3/20`" in embed.description
        assert embed.colour.value == EmbedBuilder.COLOR_PANEL
        assert embed.footer.text == "Example SMP • Live panel"

    def test_connection_field(self, config, known_counts):
        embed = EmbedBuilder.panel_embed(config, known_counts)

        fields = {field.name: field.value for field in embed.fields}
        assert fields["🔌 Connection"] == "**IP:** `play.example.net`"
        assert fields["🕒 Updated"].startswith("<t:")
        assert "🔗 Links" not in fields

    def test_unknown_counts_without_reachability(self, config):
        embed = EmbedBuilder.panel_embed(config, PlayerCount.unknown())

        assert "`?`" in embed.description
        assert "did not respond" in embed.description
        assert embed.colour.value == EmbedBuilder.COLOR_WARNING

    def test_unknown_counts_server_reachable(self, config):
        embed = EmbedBuilder.panel_embed(config, PlayerCount(server_up=True))
        assert "reachable" in embed.description

    def test_unknown_counts_server_offline(self, config):
        embed = EmbedBuilder.panel_embed(config, PlayerCount(server_up=False))
        assert "offline" in embed.description

    def test_zero_players_is_not_unknown(self, config):
        embed = EmbedBuilder.panel_embed(config, PlayerCount(online=0, max=20))

        assert "`0/20`" in embed.description
        assert embed.colour.value == EmbedBuilder.COLOR_PANEL

    def test_links_and_artwork(self, make_config, known_counts):
        config = make_config(
            website_url="example.net",
            panel_thumbnail_url="https://cdn.example.net/icon.png",
            panel_banner_url="https://cdn.example.net/banner.png",
        )
        embed = EmbedBuilder.panel_embed(config, known_counts)

        assert embed.url == "https://example.net"
        assert embed.thumbnail.url == "https://cdn.example.net/icon.png"
        assert embed.image.url == "https://cdn.example.net/banner.png"
        fields = {field.name: field.value for field in embed.fields}
        assert fields["🔗 Links"] == "🌐 Web: https://example.net"


class TestSimpleEmbeds:
    def test_error_embed(self):
        embed = EmbedBuilder.error_embed("nope")
        assert embed.title == "❌ Error"
        assert embed.description == "nope"
        assert embed.colour.value == EmbedBuilder.COLOR_ERROR

    def test_cooldown_embed(self):
        embed = EmbedBuilder.cooldown_embed(12)
        assert "12 seconds" in embed.description


@pytest.mark.asyncio
class TestBuildLinkView:
    async def test_no_links_no_view(self, config):
        assert build_link_view(config) is None

    async def test_buttons_for_links_plus_address(self, make_config):
        config = make_config(website_url="example.net", store_url="store.example.net")
        view = build_link_view(config)

        labels = [item.label for item in view.children]
        assert labels == ["🌐 Web", "🛒 Store", "📌 play.example.net"]
        assert all(item.style is discord.ButtonStyle.link for item in view.children)
        # Address button prefers the store link
        assert view.children[-1].url == "https://store.example.net"
        assert view.timeout is None
