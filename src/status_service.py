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

"""Failure-tolerant front for a StatusSource, shared by the panel, presence and commands."""

from typing import Optional

import structlog

from status_parser import PlayerCount
from status_sources import StatusSource

logger = structlog.get_logger()


class StatusService:
    """
    Query the configured status source.

    get_counts() never raises: timeouts, refused connections and malformed
    responses are logged and reported as unknown counts for this cycle.
    """

    def __init__(self, source: StatusSource) -> None:
        self.source = source
        # Last counts written to the log, so repeated polls stay quiet
        self._last_logged: Optional[str] = None

    async def get_counts(self) -> PlayerCount:
        try:
            counts = await self.source.fetch()
        except Exception as e:
            logger.warning(
                "status_query_failed",
                source=self.source.kind.value,
                error=str(e) or type(e).__name__,
            )
            counts = PlayerCount.unknown()

        self._log_if_changed(counts)
        return counts

    async def raw_text(self) -> str:
        """Unparsed status text. Errors propagate to the caller."""
        return await self.source.raw_text()

    async def close(self) -> None:
        await self.source.close()

    def _log_if_changed(self, counts: PlayerCount) -> None:
        key = f"{counts.online}/{counts.max}/{counts.server_up}"
        if key == self._last_logged:
            return
        self._last_logged = key
        logger.info(
            "player_count_changed",
            online=counts.online,
            max=counts.max,
            match=counts.match.value,
            server_up=counts.server_up,
        )
