from __future__ import annotations

import datetime as dt
import logging
import os

from dotenv import dotenv_values, set_key

from fbsbot.domain import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

SUNDAY = 6


def advance_booking_date(stored: dt.date, *, excluded_weekday: int = SUNDAY) -> dt.date:
    next_day = stored + dt.timedelta(days=1)
    if next_day.weekday() == excluded_weekday:
        next_day += dt.timedelta(days=1)
    return next_day


def roll_booking_date(env_path: str, *, key: str = "BOOKING_DATE") -> dt.date:
    """Advance the date stored under ``key`` in a .env file and write it back."""

    if not os.path.exists(env_path):
        raise ConfigurationError(f"Env file not found: {env_path}")

    raw = dotenv_values(env_path).get(key)
    if not raw:
        raise ConfigurationError(f"{key} not found in {env_path}")

    try:
        stored = dt.date.fromisoformat(raw.strip())
    except ValueError as e:
        raise ValidationError(f"Malformed {key} value in {env_path}: {raw!r}. Expected YYYY-MM-DD.") from e

    new_date = advance_booking_date(stored)
    set_key(env_path, key, new_date.isoformat(), quote_mode="never")
    logger.info("Updated %s: %s -> %s", key, stored.isoformat(), new_date.isoformat())
    return new_date
