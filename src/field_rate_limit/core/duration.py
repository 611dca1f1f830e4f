from __future__ import annotations

import re

from field_rate_limit.core.errors import ConfigurationError

_SECOND_MS = 1000
_MINUTE_MS = 60 * _SECOND_MS
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS
_WEEK_MS = 7 * _DAY_MS
_YEAR_MS = 365.25 * _DAY_MS

_UNITS_MS: dict[str, float] = {
    "": 1,
    "ms": 1, "msec": 1, "msecs": 1, "millisecond": 1, "milliseconds": 1,
    "s": _SECOND_MS, "sec": _SECOND_MS, "secs": _SECOND_MS, "second": _SECOND_MS, "seconds": _SECOND_MS,
    "m": _MINUTE_MS, "min": _MINUTE_MS, "mins": _MINUTE_MS, "minute": _MINUTE_MS, "minutes": _MINUTE_MS,
    "h": _HOUR_MS, "hr": _HOUR_MS, "hrs": _HOUR_MS, "hour": _HOUR_MS, "hours": _HOUR_MS,
    "d": _DAY_MS, "day": _DAY_MS, "days": _DAY_MS,
    "w": _WEEK_MS, "week": _WEEK_MS, "weeks": _WEEK_MS,
    "y": _YEAR_MS, "yr": _YEAR_MS, "yrs": _YEAR_MS, "year": _YEAR_MS, "years": _YEAR_MS,
}

_DURATION_RE = re.compile(r"^(?P<amount>\d*\.?\d+) *(?P<unit>[a-z]*)$")


def parse_window(value: int | float | str) -> int:
    """
    Parse a window into integer milliseconds.

    Plain numbers are milliseconds. Strings follow the `ms` grammar:
    "1500", "10s", "0.5s", "2 minutes", "1h", "1d".
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid rate limit window: {value!r}")

    if isinstance(value, (int, float)):
        if value < 0 or (isinstance(value, float) and not value.is_integer()):
            raise ConfigurationError(f"Invalid rate limit window: {value!r}")
        return int(value)

    if not isinstance(value, str):
        raise ConfigurationError(f"Invalid rate limit window: {value!r}")

    match = _DURATION_RE.match(value.strip().lower())
    if not match or match.group("unit") not in _UNITS_MS:
        raise ConfigurationError(f"Invalid rate limit window: {value!r}")

    return round(float(match.group("amount")) * _UNITS_MS[match.group("unit")])
