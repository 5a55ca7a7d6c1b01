import re

from double_analyzer.config import settings

_DATE_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4})")
_TIME_RE = re.compile(r"(\d{2}):(\d{2})(?::(\d{2}))?")


def is_valid_number(n: int, number_max: int | None = None) -> bool:
    number_max = settings.number_max if number_max is None else number_max
    return isinstance(n, int) and not isinstance(n, bool) and 0 <= n <= number_max


def match_date(s: str | None):
    """DD/MM/YYYY -> (day, month, year) or None."""
    m = _DATE_RE.fullmatch((s or "").strip())
    return tuple(int(x) for x in m.groups()) if m else None


def match_time(s: str | None):
    """HH:MM[:SS] -> (hour, minute, second) or None."""
    m = _TIME_RE.fullmatch((s or "").strip())
    if not m:
        return None
    h, mi, sec = m.groups()
    return int(h), int(mi), int(sec or 0)
