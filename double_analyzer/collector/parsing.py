"""Turn raw text scraped from the game page into RawRound records.

Everything here is pure and fails closed: a record whose number or
timestamp does not match the expected shape is dropped (None), never
patched with a guess.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from double_analyzer.config import settings
from double_analyzer.core.colors import Color, color_for_number
from double_analyzer.core.validation import is_valid_number, match_date, match_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawRound:
    color: Color
    number: int
    observed_at: datetime  # aware, UTC
    source_tag: str = "history_panel"
    external_id: str | None = None


def parse_page_timestamp(date_text: str | None, time_text: str | None, tz_name: str | None = None) -> datetime | None:
    """Parse the page's "DD/MM/YYYY" + "HH:MM:SS" pair into an aware UTC datetime.

    The page renders local wall-clock time of ``tz_name``.
    """
    d = match_date(date_text)
    t = match_time(time_text)
    if d is None or t is None:
        return None
    day, month, year = d
    hour, minute, second = t
    try:
        local = datetime(year, month, day, hour, minute, second, tzinfo=ZoneInfo(tz_name or settings.source_timezone))
    except ValueError:
        return None
    return local.astimezone(timezone.utc)


def parse_number(text: str | None, number_max: int | None = None) -> int | None:
    raw = (text or "").strip()
    if raw == "":
        # the white tile renders without digits
        return 0
    if not (raw.isascii() and raw.isdigit()):
        return None
    n = int(raw)
    return n if is_valid_number(n, number_max) else None


def parse_history_entry(entry: dict, tz_name: str | None = None, source_tag: str = "history_panel") -> RawRound | None:
    """Build a RawRound from one history-panel row.

    ``entry`` carries the raw strings ``number``, ``date`` and ``time`` as
    read from the DOM.
    """
    number = parse_number(entry.get("number"))
    if number is None:
        logger.warning("Dropping history row with bad number: %r", entry.get("number"))
        return None
    observed_at = parse_page_timestamp(entry.get("date"), entry.get("time"), tz_name)
    if observed_at is None:
        logger.warning("Dropping history row with bad timestamp: %r %r", entry.get("date"), entry.get("time"))
        return None
    return RawRound(
        color=color_for_number(number),
        number=number,
        observed_at=observed_at,
        source_tag=source_tag,
        external_id=entry.get("id") or None,
    )


def parse_history(entries: list[dict], tz_name: str | None = None, limit: int | None = None) -> list[RawRound]:
    """Parse a newest-first list of panel rows, skipping malformed ones."""
    out = []
    for entry in entries[: limit or settings.read_limit]:
        r = parse_history_entry(entry, tz_name)
        if r is not None:
            out.append(r)
    return out
