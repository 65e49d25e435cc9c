from __future__ import annotations

from datetime import timedelta

import pytest

from alertmanager_matrix.core.duration import parse_duration


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2d", timedelta(hours=48)),
        ("1w", timedelta(hours=168)),
        ("1y", timedelta(hours=8760)),
        ("90m", timedelta(minutes=90)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5h", timedelta(hours=1, minutes=30)),
        ("45s", timedelta(seconds=45)),
        ("-2h", timedelta(hours=-2)),
        ("0", timedelta(0)),
        ("1500ns", timedelta(microseconds=2)),
        ("1ms500us", timedelta(microseconds=1500)),
    ],
)
def test_parse_duration(value: str, expected: timedelta) -> None:
    assert parse_duration(value) == expected


@pytest.mark.parametrize(
    ("value", "message"),
    [
        ("", "invalid duration"),
        ("abc", "invalid duration"),
        ("10", "missing unit"),
        ("2x", 'unknown unit "x"'),
        ("1d2h", 'unknown unit "d"'),
    ],
)
def test_parse_duration_rejects_invalid_values(value: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_duration(value)
