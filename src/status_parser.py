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
Player count extraction from Minecraft "list" responses.

Server software phrases the player list differently, so patterns are tried
in priority order and the first match wins:

1. Plugin phrasing:  "Online Players 3/20:"
2. Vanilla phrasing: "There are 3 of a max of 20 players online"
3. Fallback:         first "<int>/<int>" anywhere in the text

Formatting codes (ANSI escapes, section-sign colour codes) and carriage
returns are stripped first, since counts are often wrapped in colours.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re
from typing import Any, List, Optional, Tuple

import structlog

logger = structlog.get_logger()

# Longer digit runs are noise, not player counts
MAX_COUNT_DIGITS = 9

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")
SECTION_CODE_RE = re.compile(r"§[0-9a-fk-or]", re.IGNORECASE)


class CountMatch(str, Enum):
    """How a PlayerCount was obtained."""

    PLUGIN = "plugin"
    VANILLA = "vanilla"
    FALLBACK = "fallback"
    STRUCTURED = "structured"
    NONE = "none"


@dataclass(frozen=True)
class PlayerCount:
    """Online/max player counts. None means the query failed or was unparseable."""

    online: Optional[int] = None
    max: Optional[int] = None
    match: CountMatch = CountMatch.NONE
    server_up: Optional[bool] = None
    raw: str = ""

    @property
    def known(self) -> bool:
        return isinstance(self.online, int) and isinstance(self.max, int)

    def display(self) -> str:
        """'online/max' when known, '?' otherwise."""
        if self.known:
            return f"{self.online}/{self.max}"
        return "?"

    @classmethod
    def unknown(cls, raw: str = "") -> "PlayerCount":
        return cls(raw=raw)


# Ordered: first match wins
PLAYER_LIST_PATTERNS: List[Tuple[CountMatch, "re.Pattern[str]"]] = [
    (CountMatch.PLUGIN, re.compile(r"Online Players\s*(\d+)\s*/\s*(\d+)\s*:", re.IGNORECASE)),
    (
        CountMatch.VANILLA,
        re.compile(r"There are\s+(\d+)\s+of a max of\s+(\d+)\s+players online", re.IGNORECASE),
    ),
    (CountMatch.FALLBACK, re.compile(r"(\d+)\s*/\s*(\d+)")),
]


def clean_minecraft_text(raw: Any) -> str:
    """Strip ANSI escapes, § colour codes and carriage returns."""
    text = "" if raw is None else str(raw)
    text = ANSI_ESCAPE_RE.sub("", text)
    text = SECTION_CODE_RE.sub("", text)
    return text.replace("\r", "")


def parse_player_list(raw: Any) -> PlayerCount:
    """
    Extract (online, max) from the response to a "list" command.

    Never raises: unrecognised input yields PlayerCount(None, None).

    Args:
        raw: Raw response text (may contain formatting codes)

    Returns:
        PlayerCount with the matched pattern recorded in ``match``
    """
    cleaned = clean_minecraft_text(raw)

    for kind, pattern in PLAYER_LIST_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            online_text, max_text = match.group(1), match.group(2)
            if len(online_text) > MAX_COUNT_DIGITS or len(max_text) > MAX_COUNT_DIGITS:
                logger.debug("player_list_count_unreadable", pattern=kind.value, digits=len(online_text))
                continue
            count = PlayerCount(
                online=int(online_text),
                max=int(max_text),
                match=kind,
                raw=cleaned,
            )
            if kind is CountMatch.FALLBACK:
                logger.debug(
                    "player_list_fallback_match",
                    online=count.online,
                    max=count.max,
                    preview=cleaned[:100],
                )
            return count

    logger.debug("player_list_unparsed", preview=cleaned[:100])
    return PlayerCount.unknown(raw=cleaned)
