import argparse
import logging
import os

from dotenv import dotenv_values

from fbsbot.date_roller import roll_booking_date
from fbsbot.domain import BookingBotError
from fbsbot.logging_config import normalize_level, setup_logging

logger = logging.getLogger(__name__)


def _logging_options(env_file: str) -> tuple[str, str | None]:
    # The process environment wins over the .env file, as in load_settings.
    file_values = dotenv_values(env_file) if os.path.exists(env_file) else {}

    def lookup(key: str) -> str:
        return os.getenv(key) or file_values.get(key) or ""

    ci = lookup("CI").strip().lower() == "true"
    log_dir = None if ci else (lookup("LOG_DIR") or "logs")
    return normalize_level(lookup("LOG_LEVEL")), log_dir


def main() -> int:
    parser = argparse.ArgumentParser(description="Advance BOOKING_DATE in .env by one day, skipping Sunday")
    parser.add_argument("--env-file", default=".env", help="Path to the .env file to update")
    args = parser.parse_args()

    level, log_dir = _logging_options(args.env_file)
    setup_logging(level, log_dir=log_dir)

    try:
        new_date = roll_booking_date(args.env_file)
    except BookingBotError as e:
        logger.error("Failed to update BOOKING_DATE (%s)", e)
        return 1

    logger.info("BOOKING_DATE is now %s", new_date.isoformat())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
