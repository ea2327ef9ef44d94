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
Status sources: where the current player counts come from.

- rcon:  "list" over RCON, parsed by status_parser
- query: Server List Ping via mcstatus
- api:   third-party HTTP status API (mcsrvstat.us compatible JSON)
- probe: plain TCP reachability check (no counts)
- relay: newest JSON status blob posted in a Discord channel by a companion process

Sources raise on failure. StatusService is responsible for turning failures
into an unknown PlayerCount.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
import json
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import aiohttp
from mcstatus import JavaServer
import structlog

from config import Config, StatusSourceKind
from rcon_client import RconClient
from status_parser import CountMatch, PlayerCount, parse_player_list

logger = structlog.get_logger()

RELAY_HISTORY_LIMIT = 25


@runtime_checkable
class StatusSource(Protocol):
    """Interface every status backend implements."""

    kind: StatusSourceKind

    async def fetch(self) -> PlayerCount:
        """Return current counts. Raises on query failure."""
        ...

    async def raw_text(self) -> str:
        """Return the unparsed status text (debug command)."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        ...


def _as_count(value: Any) -> Optional[int]:
    """Accept non-negative ints (not bools) from decoded JSON."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value >= 0 else None


class RconStatusSource:
    """Counts from the response to the RCON "list" command."""

    kind = StatusSourceKind.RCON

    def __init__(self, client: RconClient, command: str = "list") -> None:
        self.client = client
        self.command = command

    async def fetch(self) -> PlayerCount:
        response = await self.client.execute(self.command)
        return parse_player_list(response)

    async def raw_text(self) -> str:
        return await self.client.execute(self.command)

    async def close(self) -> None:
        return None


class QueryStatusSource:
    """Counts from the Minecraft Server List Ping protocol."""

    kind = StatusSourceKind.QUERY

    def __init__(self, address: str, timeout: float = 5.0) -> None:
        self.address = address
        self.timeout = timeout

    async def _status(self) -> Any:
        server = await JavaServer.async_lookup(self.address, timeout=self.timeout)
        return await server.async_status()

    async def fetch(self) -> PlayerCount:
        status = await self._status()
        return PlayerCount(
            online=status.players.online,
            max=status.players.max,
            match=CountMatch.STRUCTURED,
            server_up=True,
            raw=f"{status.version.name} {status.players.online}/{status.players.max}",
        )

    async def raw_text(self) -> str:
        status = await self._status()
        return (
            f"version: {status.version.name}\n"
            f"players: {status.players.online}/{status.players.max}\n"
            f"latency: {status.latency:.0f} ms"
        )

    async def close(self) -> None:
        return None


class ApiStatusSource:
    """Counts from a third-party HTTP status API."""

    kind = StatusSourceKind.API

    def __init__(self, address: str, url_template: str, timeout: float = 5.0) -> None:
        self.address = address
        self.url = url_template.format(address=address)
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self.session

    async def _get_json(self) -> Dict[str, Any]:
        session = await self._ensure_session()
        async with session.get(self.url) as response:
            response.raise_for_status()
            data = await response.json(content_type=None)
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected status API payload: {type(data).__name__}")
        return data

    async def fetch(self) -> PlayerCount:
        data = await self._get_json()
        server_up = bool(data.get("online"))
        players = data.get("players") or {}
        if not server_up or not isinstance(players, dict):
            return PlayerCount(server_up=server_up, raw=json.dumps(data)[:500])

        return PlayerCount(
            online=_as_count(players.get("online")),
            max=_as_count(players.get("max")),
            match=CountMatch.STRUCTURED,
            server_up=True,
            raw=json.dumps(data)[:500],
        )

    async def raw_text(self) -> str:
        return json.dumps(await self._get_json(), indent=2)

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None


class ProbeStatusSource:
    """TCP reachability only: counts stay unknown, server_up reports the probe."""

    kind = StatusSourceKind.PROBE

    def __init__(self, host: str, port: int, timeout: float = 5.0) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout

    async def _probe(self) -> None:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(self.host, self.port),
            timeout=self.timeout,
        )
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

    async def fetch(self) -> PlayerCount:
        await self._probe()
        return PlayerCount(server_up=True, raw=f"{self.host}:{self.port} reachable")

    async def raw_text(self) -> str:
        await self._probe()
        return f"{self.host}:{self.port} reachable"

    async def close(self) -> None:
        return None


def parse_relay_payload(content: str) -> Optional[Dict[str, Any]]:
    """
    Decode a relay status message.

    Accepts a bare JSON object or one fenced in a ```json code block. The
    object must carry counts either at the top level (``online``/``max``) or
    under ``players``.
    """
    text = (content or "").strip()
    if text.startswith("```"):
        text = text.strip("`").strip()
        if text.lower().startswith("json"):
            text = text[4:].strip()

    if not text.startswith("{"):
        return None

    try:
        data = json.loads(text)
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None

    players = data.get("players")
    if isinstance(players, dict) and "online" in players and "max" in players:
        return data
    if "online" in data and "max" in data:
        return data
    return None


class RelayStatusSource:
    """Counts relayed by a companion process as JSON messages in a Discord channel."""

    kind = StatusSourceKind.RELAY

    def __init__(self, bot: Any, channel_id: int, max_age_seconds: int = 180) -> None:
        self.bot = bot
        self.channel_id = channel_id
        self.max_age = timedelta(seconds=max_age_seconds)

    async def _channel(self) -> Any:
        channel = self.bot.get_channel(self.channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(self.channel_id)
        return channel

    async def _latest(self) -> tuple[Any, Dict[str, Any]]:
        channel = await self._channel()
        cutoff = datetime.now(timezone.utc) - self.max_age

        async for message in channel.history(limit=RELAY_HISTORY_LIMIT):
            if message.created_at < cutoff:
                break
            payload = parse_relay_payload(message.content)
            if payload is not None:
                return message, payload

        raise LookupError(
            f"No relay status newer than {int(self.max_age.total_seconds())}s "
            f"in channel {self.channel_id}"
        )

    async def fetch(self) -> PlayerCount:
        message, payload = await self._latest()
        players = payload.get("players")
        if isinstance(players, dict):
            online, maximum = players.get("online"), players.get("max")
            server_up = payload.get("online")
        else:
            online, maximum = payload.get("online"), payload.get("max")
            server_up = payload.get("server_up")

        logger.debug("relay_status_read", message_id=message.id)
        return PlayerCount(
            online=_as_count(online),
            max=_as_count(maximum),
            match=CountMatch.STRUCTURED,
            server_up=server_up if isinstance(server_up, bool) else True,
            raw=message.content[:500],
        )

    async def raw_text(self) -> str:
        message, _ = await self._latest()
        return message.content

    async def close(self) -> None:
        return None


def create_status_source(config: Config, bot: Any = None) -> StatusSource:
    """
    Build the status source selected by config.status_source.

    Args:
        config: Application config
        bot: Discord client, required for the relay source

    Raises:
        ValueError: If the selected source is missing its settings or the relay
            source is selected without a bot
    """
    kind = config.status_source

    if kind is StatusSourceKind.RCON:
        if config.rcon_host is None or config.rcon_password is None:
            raise ValueError("The rcon status source needs RCON_HOST and RCON_PASSWORD")
        client = RconClient(
            host=config.rcon_host,
            port=config.rcon_port,
            password=config.rcon_password,
            timeout=config.rcon_timeout,
        )
        source: StatusSource = RconStatusSource(client)
    elif kind is StatusSourceKind.QUERY:
        source = QueryStatusSource(config.mc_address, timeout=config.query_timeout)
    elif kind is StatusSourceKind.API:
        source = ApiStatusSource(
            config.mc_address,
            url_template=config.status_api_url,
            timeout=config.query_timeout,
        )
    elif kind is StatusSourceKind.PROBE:
        host, port = config.mc_host_port
        source = ProbeStatusSource(host, port, timeout=config.query_timeout)
    else:
        if bot is None:
            raise ValueError("The relay status source needs a Discord client")
        if config.relay_channel_id is None:
            raise ValueError("The relay status source needs RELAY_CHANNEL_ID")
        source = RelayStatusSource(
            bot,
            channel_id=config.relay_channel_id,
            max_age_seconds=config.relay_max_age_seconds,
        )

    logger.info("status_source_created", kind=kind.value)
    return source
