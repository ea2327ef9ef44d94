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
RCON client for Minecraft server queries.

Wraps the synchronous Source RCON client from the rcon library. Each command
opens its own short-lived connection in a worker thread, bounded by a timeout.
There is no reconnect loop: the panel and presence timers retry on their own.
"""

from __future__ import annotations

import asyncio

from rcon.source import Client as RCONClient
import structlog

logger = structlog.get_logger()


class RconClient:
    """Async wrapper around the synchronous RCON client."""

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        timeout: float = 6.0,
    ) -> None:
        """
        Initialize RCON client.

        Args:
            host: RCON host address
            port: RCON port
            password: RCON password
            timeout: Socket timeout in seconds for connect and command
        """
        self.host = host
        self.port = port
        self.password = password
        self.timeout = timeout

    async def execute(self, command: str) -> str:
        """
        Execute an RCON command and return its text response.

        Raises:
            TimeoutError: If the command does not complete in time
            Exception: Connection/authentication errors from the rcon library
        """

        def _execute() -> str:
            with RCONClient(
                self.host,
                self.port,
                passwd=self.password,
                timeout=self.timeout,
            ) as client:
                return client.run(command)

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(_execute),
                timeout=self.timeout + 1.0,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "rcon_command_timeout",
                command=command,
                host=self.host,
                port=self.port,
                timeout=self.timeout,
            )
            raise TimeoutError(f"RCON command timed out after {self.timeout + 1.0}s: {command}")
        except Exception as e:
            logger.warning(
                "rcon_command_failed",
                command=command,
                host=self.host,
                port=self.port,
                error=str(e),
            )
            raise

        logger.debug(
            "rcon_command_executed",
            command=command[:50],
            response_length=len(response) if response else 0,
        )
        return response if response else ""
