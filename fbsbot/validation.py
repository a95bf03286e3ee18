from __future__ import annotations

import datetime as dt
import logging

from fbsbot.domain import ValidationResult

logger = logging.getLogger(__name__)

# Singapore has no DST, a fixed offset is enough.
SGT = dt.timezone(dt.timedelta(hours=8), name="SGT")

BOOKING_WINDOW_DAYS = 14
MAX_DURATION_MINUTES = 4 * 60


def _slots(first_minute: int, last_minute: int) -> frozenset[str]:
    return frozenset(f"{m // 60:02d}:{m % 60:02d}" for m in range(first_minute, last_minute + 1, 30))


START_SLOTS = _slots(8 * 60 + 30, 22 * 60)
END_SLOTS = _slots(9 * 60, 22 * 60 + 30)


def singapore_today(now: dt.datetime | None = None) -> dt.date:
    if now is None:
        now = dt.datetime.now(tz=SGT)
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(SGT).date()


def parse_booking_date(raw: object) -> dt.date | None:
    """Reduce a date-like value to a calendar day in the reference zone.

    Accepts ``date``, ``datetime`` (aware values are converted to SGT first)
    and ISO strings. Returns None for anything unparseable.
    """

    if isinstance(raw, dt.datetime):
        return singapore_today(raw)
    if isinstance(raw, dt.date):
        return raw
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return singapore_today(dt.datetime.fromisoformat(text))
    except ValueError:
        return None


def validate_booking_date(candidate: object, today: dt.date | dt.datetime) -> ValidationResult:
    booking_day = parse_booking_date(candidate)
    today_day = parse_booking_date(today)
    logger.debug("Validating booking date (today=%s, booking_date=%s)", today_day, booking_day)

    if booking_day is None or today_day is None:
        logger.debug("Invalid booking date format: %r", candidate)
        return ValidationResult(False, "Wrong booking date format")

    day_diff = (booking_day - today_day).days
    logger.debug("Date difference calculated (day_diff=%d)", day_diff)

    if day_diff < 0:
        return ValidationResult(False, "Booking date cannot be before today's date")

    if day_diff > BOOKING_WINDOW_DAYS:
        return ValidationResult(False, f"Booking date must be within {BOOKING_WINDOW_DAYS} days of today's date")

    return ValidationResult(True, "Booking date is valid")


def _to_minutes(token: str) -> int:
    hours, minutes = token.split(":")
    return int(hours) * 60 + int(minutes)


def validate_booking_time(start: str | None, end: str | None) -> ValidationResult:
    logger.debug("Validating booking times (start=%r, end=%r)", start, end)

    if not isinstance(start, str) or start not in START_SLOTS:
        return ValidationResult(False, "Start time must be between 08:30 and 22:00 in 30-minute intervals")

    if not isinstance(end, str) or end not in END_SLOTS:
        return ValidationResult(False, "End time must be between 09:00 and 22:30 in 30-minute intervals")

    start_minutes = _to_minutes(start)
    end_minutes = _to_minutes(end)

    if start_minutes >= end_minutes:
        return ValidationResult(False, "Booking start time must be before end time")

    if end_minutes - start_minutes > MAX_DURATION_MINUTES:
        logger.debug("Booking duration exceeds limit (%d min)", end_minutes - start_minutes)
        return ValidationResult(False, "Booking duration cannot exceed 4 hours")

    return ValidationResult(True, "Booking times are valid")
