from __future__ import annotations

import datetime as dt

import pytest

from fbsbot.selenium_provider import format_calendar_title, format_time_option, needs_next_month


def test_calendar_title() -> None:
    assert format_calendar_title(dt.date(2026, 11, 5)) == "05-Nov-2026"
    assert format_calendar_title(dt.date(2027, 1, 31)) == "31-Jan-2027"


@pytest.mark.parametrize(
    "hhmm, expected",
    [
        ("08:30", "11/5/2026 8:30:00 AM"),
        ("12:00", "11/5/2026 12:00:00 PM"),
        ("13:30", "11/5/2026 1:30:00 PM"),
        ("22:30", "11/5/2026 10:30:00 PM"),
    ],
)
def test_time_option_label(hhmm: str, expected: str) -> None:
    assert format_time_option(dt.date(2026, 11, 5), hhmm) == expected


@pytest.mark.parametrize(
    "booking, today, expected",
    [
        (dt.date(2026, 10, 30), dt.date(2026, 10, 18), False),
        (dt.date(2026, 11, 1), dt.date(2026, 10, 18), True),
        (dt.date(2026, 12, 3), dt.date(2026, 11, 20), True),
        # Year boundary is not handled.
        (dt.date(2027, 1, 3), dt.date(2026, 12, 25), False),
    ],
)
def test_needs_next_month(booking: dt.date, today: dt.date, expected: bool) -> None:
    assert needs_next_month(booking, today) is expected
