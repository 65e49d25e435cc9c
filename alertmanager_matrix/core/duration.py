from __future__ import annotations

import re
from datetime import timedelta

DAY = timedelta(days=1)
WEEK = 7 * DAY
YEAR = 365 * DAY

_LONG_UNITS = {"d": DAY, "w": WEEK, "y": YEAR}
_LONG_DURATION = re.compile(r"([0-9]+)([a-zA-Z])")

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]*)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``2d``, ``1w``, ``1y`` or ``1h30m``.

    Day, week and (365 day) year units are accepted as a single
    ``<int><unit>`` term. Everything else is parsed with the usual
    ``h``/``m``/``s`` grammar.
    """
    match = _LONG_DURATION.fullmatch(value)
    if match is not None:
        unit = _LONG_UNITS.get(match.group(2))
        if unit is not None:
            return int(match.group(1)) * unit
    return _parse_standard_duration(value)


def _parse_standard_duration(value: str) -> timedelta:
    quoted = f'"{value}"'
    rest = value
    negative = False
    if rest[:1] in ("-", "+"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"time: invalid duration {quoted}")

    total_ns = 0.0
    while rest:
        match = _COMPONENT.match(rest)
        if match is None:
            raise ValueError(f"time: invalid duration {quoted}")
        number, unit = match.group(1), match.group(2)
        if number in ("", "."):
            raise ValueError(f"time: invalid duration {quoted}")
        if not unit:
            raise ValueError(f"time: missing unit in duration {quoted}")
        scale = _UNIT_NANOSECONDS.get(unit)
        if scale is None:
            raise ValueError(f'time: unknown unit "{unit}" in duration {quoted}')
        total_ns += float(number) * scale
        rest = rest[match.end() :]

    # timedelta resolution is one microsecond
    total = timedelta(microseconds=round(total_ns / 1000))
    return -total if negative else total
