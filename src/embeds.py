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
Embeds and link buttons for the status panel and command replies.

Unknown counts render as "?" with an explanation, never as 0: a failed query
must not look like an empty server.
"""

from __future__ import annotations

from typing import List, Optional, Tuple, cast

import discord
import structlog

from config import Config
from status_parser import PlayerCount

logger = structlog.get_logger()

BAR_SIZE = 14
FIELD_VALUE_LIMIT = 1024


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Prefix bare domains with https://. Empty values become None."""
    if not url:
        return None
    url = url.strip()
    if not url:
        return None
    return url if url.startswith(("http://", "https://")) else f"https://{url}"


def make_bar(online: int, maximum: int, size: int = BAR_SIZE) -> str:
    """Text progress bar for online/max, filled portion clamped to [0, size]."""
    safe_max = maximum if maximum > 0 else 1
    filled = int(round((online / safe_max) * size))
    filled = max(0, min(size, filled))
    return "█" * filled + "░" * (size - filled)


def panel_links(config: Config) -> List[Tuple[str, str]]:
    """(label, url) pairs for every configured link, in display order."""
    links = [
        ("💜 Discord", normalize_url(config.discord_invite_url)),
        ("🌐 Web", normalize_url(config.website_url)),
        ("🛒 Store", normalize_url(config.store_url)),
        ("📦 Modpack", normalize_url(config.modpack_url)),
    ]
    return [(label, url) for label, url in links if url]


class EmbedBuilder:
    """Helper class for creating Discord embeds."""

    COLOR_SUCCESS: int = 0x22C55E
    COLOR_INFO: int = 0x3498DB
    COLOR_WARNING: int = 0xF59E0B
    COLOR_ERROR: int = 0xFF0000
    COLOR_PANEL: int = 0x8B5BFF

    @staticmethod
    def create_base_embed(
        title: str,
        description: Optional[str] = None,
        color: Optional[int] = None,
    ) -> discord.Embed:
        """Create a base embed with standard styling."""
        return discord.Embed(
            title=title,
            description=description,
            color=color or EmbedBuilder.COLOR_INFO,
            timestamp=discord.utils.utcnow(),
        )

    @staticmethod
    def error_embed(message: str) -> discord.Embed:
        return EmbedBuilder.create_base_embed(
            title="❌ Error",
            description=message,
            color=EmbedBuilder.COLOR_ERROR,
        )

    @staticmethod
    def info_embed(title: str, message: str) -> discord.Embed:
        return EmbedBuilder.create_base_embed(
            title=title,
            description=message,
            color=EmbedBuilder.COLOR_INFO,
        )

    @staticmethod
    def cooldown_embed(retry_seconds: int) -> discord.Embed:
        return EmbedBuilder.create_base_embed(
            title="⏱️ Slow Down!",
            description=f"You're using commands too quickly.\nTry again in {retry_seconds} seconds.",
            color=EmbedBuilder.COLOR_WARNING,
        )

    @staticmethod
    def players_description(counts: PlayerCount) -> str:
        """Player line for the panel; explicit unknown state when counts are missing."""
        if counts.known:
            online, maximum = cast(int, counts.online), cast(int, counts.max)
            return (
                f"**👥 Players:** `{online}/{maximum}`\n"
                f"`{make_bar(online, maximum)}`"
            )
        if counts.server_up is True:
            return "**👥 Players:** `?`\n_🟢 The server is reachable but did not report a player count._"
        if counts.server_up is False:
            return "**👥 Players:** `?`\n_🔴 The server appears to be offline._"
        return "**👥 Players:** `?`\n_The server did not respond to the status query right now._"

    @staticmethod
    def panel_embed(config: Config, counts: PlayerCount) -> discord.Embed:
        """
        Build the live status panel.

        Args:
            config: Application config (name, address, links, artwork)
            counts: Latest PlayerCount, possibly unknown

        Returns:
            discord.Embed for the panel message and /status replies
        """
        color = EmbedBuilder.COLOR_PANEL if counts.known else EmbedBuilder.COLOR_WARNING
        title_url = (
            normalize_url(config.website_url)
            or normalize_url(config.store_url)
            or normalize_url(config.discord_invite_url)
        )

        embed = EmbedBuilder.create_base_embed(
            title=f"📡 {config.mc_name}",
            description=EmbedBuilder.players_description(counts),
            color=color,
        )
        if title_url:
            embed.url = title_url

        now = int(discord.utils.utcnow().timestamp())
        embed.add_field(name="🔌 Connection", value=f"**IP:** `{config.mc_address}`", inline=True)
        embed.add_field(name="🕒 Updated", value=f"<t:{now}:R>", inline=True)

        links = panel_links(config)
        if links:
            value = "\n".join(f"{label}: {url}" for label, url in links)
            embed.add_field(name="🔗 Links", value=value[:FIELD_VALUE_LIMIT], inline=False)

        if config.panel_thumbnail_url:
            embed.set_thumbnail(url=config.panel_thumbnail_url)
        if config.panel_banner_url:
            embed.set_image(url=config.panel_banner_url)

        embed.set_footer(text=f"{config.mc_name} • Live panel")
        return embed


def build_link_view(config: Config) -> Optional[discord.ui.View]:
    """
    Link buttons under the panel. Returns None when nothing is configured.

    Discord cannot open minecraft:// links, so the address button is only a
    label pointing at the first configured web link.
    """
    links = panel_links(config)
    if not links:
        return None

    view = discord.ui.View(timeout=None)
    for label, url in links:
        view.add_item(discord.ui.Button(style=discord.ButtonStyle.link, label=label, url=url))

    address_target = (
        normalize_url(config.store_url)
        or normalize_url(config.website_url)
        or normalize_url(config.discord_invite_url)
        or links[0][1]
    )
    view.add_item(
        discord.ui.Button(
            style=discord.ButtonStyle.link,
            label=f"📌 {config.mc_address}"[:80],
            url=address_target,
        )
    )
    return view
