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

"""Shared pytest fixtures.

All fixtures return plain MagicMock/AsyncMock doubles shaped like the
discord.py objects the production code touches:

- make_config: Config factory with a valid rcon deployment by default
- mock_interaction: discord.Interaction with response/followup
- make_channel / make_message: Messageable channel and panel message doubles
- http_error: build discord.HTTPException subclasses without a real response
- panel_store: PanelStore backed by a tmp_path file
"""

import sys
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

# Add src/ to Python path for absolute imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from config import Config  # noqa: E402
from panel_store import PanelStore  # noqa: E402
from status_parser import CountMatch, PlayerCount  # noqa: E402


@pytest.fixture
def make_config() -> Callable[..., Config]:
    """Config factory. Keyword overrides are passed straight to Config."""

    def _make(**overrides: Any) -> Config:
        values: dict = {
            "discord_token": "test-token",
            "mc_address": "play.example.net",
            "mc_name": "Example SMP",
            "rcon_host": "127.0.0.1",
            "rcon_password": "secret",
        }
        values.update(overrides)
        return Config(**values)

    return _make


@pytest.fixture
def config(make_config) -> Config:
    return make_config()


@pytest.fixture
def known_counts() -> PlayerCount:
    return PlayerCount(online=3, max=20, match=CountMatch.VANILLA, server_up=True)


@pytest.fixture
def mock_interaction() -> MagicMock:
    """
    Mock discord.Interaction.

    Type Contract:
        - user.id: int = 123456789, user.name: str = "testuser"
        - user.guild_permissions: manage_guild/administrator False
        - guild_id: int = 111, channel_id: int = 222
        - response.defer / response.send_message: AsyncMock
        - response.is_done(): False
        - followup.send: AsyncMock
    """
    interaction = MagicMock(spec=discord.Interaction)

    interaction.user = MagicMock()
    interaction.user.id = 123456789
    interaction.user.name = "testuser"
    interaction.user.guild_permissions = MagicMock(manage_guild=False, administrator=False)

    interaction.guild_id = 111
    interaction.channel_id = 222

    interaction.response = MagicMock()
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=False)

    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction


@pytest.fixture
def make_message() -> Callable[..., MagicMock]:
    def _make(message_id: int = 9001) -> MagicMock:
        message = MagicMock(spec=discord.Message)
        message.id = message_id
        message.edit = AsyncMock()
        return message

    return _make


@pytest.fixture
def make_channel(make_message) -> Callable[..., MagicMock]:
    """Messageable text channel whose send() returns a fresh message."""

    def _make(channel_id: int = 222, sent_message_id: int = 9001) -> MagicMock:
        channel = MagicMock(spec=discord.TextChannel)
        channel.id = channel_id
        channel.send = AsyncMock(return_value=make_message(sent_message_id))
        channel.fetch_message = AsyncMock()
        return channel

    return _make


@pytest.fixture
def http_error() -> Callable[..., discord.HTTPException]:
    """Build discord.HTTPException (or a subclass) with a fake aiohttp response."""

    def _make(cls: type = discord.HTTPException, status: int = 500) -> discord.HTTPException:
        response = MagicMock(status=status, reason="error")
        return cls(response, "boom")

    return _make


@pytest.fixture
def panel_store(tmp_path) -> PanelStore:
    return PanelStore(tmp_path / "panel_state.json")
