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
Per-user sliding-window rate limiting for slash commands.

Every status command triggers a remote query, so users are throttled before
the handler reaches the status source.
"""

from collections import defaultdict, deque
import math
import time
from typing import Callable, Deque, Dict, Optional, Tuple

import structlog

logger = structlog.get_logger()


class CommandCooldown:
    """Allow ``rate`` uses per ``per`` seconds for each user."""

    def __init__(
        self,
        rate: int = 3,
        per: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            rate: Number of uses allowed in the window
            per: Window length in seconds
            clock: Time source (monotonic seconds)
        """
        self.rate = rate
        self.per = per
        self._clock = clock
        self.cooldowns: Dict[int, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    def _prune(self, bucket: Deque[float], now: float) -> None:
        while bucket and bucket[0] <= now - self.per:
            bucket.popleft()

    def _sweep(self, now: float) -> None:
        """Drop users whose window has fully expired. Runs at most once per window."""
        if now - self._last_sweep < self.per:
            return
        self._last_sweep = now
        for user_id in list(self.cooldowns):
            bucket = self.cooldowns[user_id]
            self._prune(bucket, now)
            if not bucket:
                del self.cooldowns[user_id]

    def is_rate_limited(self, user_id: int) -> Tuple[bool, Optional[int]]:
        """
        Check (and record) a use by user_id.

        Returns:
            (is_limited, retry_seconds). retry_seconds is None when the use
            was allowed, otherwise the whole seconds until the window frees up.
        """
        now = self._clock()
        self._sweep(now)
        bucket = self.cooldowns[user_id]
        self._prune(bucket, now)

        if len(bucket) >= self.rate:
            retry_seconds = max(1, math.ceil(self.per - (now - bucket[0])))
            logger.debug("rate_limited", user_id=user_id, retry_seconds=retry_seconds)
            return True, retry_seconds

        bucket.append(now)
        return False, None

    def reset(self, user_id: int) -> None:
        self.cooldowns.pop(user_id, None)

    def reset_all(self) -> None:
        self.cooldowns.clear()


# Shared instances for the command surface
QUERY_COOLDOWN = CommandCooldown(rate=5, per=30.0)  # /status, /online, /rawlist
PANEL_COOLDOWN = CommandCooldown(rate=2, per=60.0)  # /panel posts a message
