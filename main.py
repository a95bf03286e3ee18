import argparse
import datetime as dt
import logging

from fbsbot.config import AUTH_ENV_KEYS, BOOKING_ENV_KEYS, load_settings, require_settings
from fbsbot.domain import ConfigurationError, RunResult
from fbsbot.logging_config import setup_logging
from fbsbot.notifier import notify_run_result
from fbsbot.worker import run_once

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="FBS room booker: log in and book a room")
    parser.add_argument("--auth-only", action="store_true", help="Only make sure a valid session is saved")
    parser.add_argument("--env-file", default=None, help="Path to .env (default: search from cwd)")
    args = parser.parse_args()

    try:
        settings = load_settings(dotenv_path=args.env_file)
    except ConfigurationError as e:
        setup_logging()
        logger.error("Invalid configuration (%s)", e)
        return 1

    setup_logging(settings.log_level, log_dir=None if settings.ci else settings.log_dir)
    logger.info("==== %s Start booking run ====", dt.datetime.now().strftime("%d/%m/%Y %H:%M:%S"))

    required = AUTH_ENV_KEYS if args.auth_only else tuple(dict.fromkeys(AUTH_ENV_KEYS + BOOKING_ENV_KEYS))
    try:
        require_settings(settings, required)
        result = run_once(settings, auth_only=args.auth_only)
    except ConfigurationError as e:
        result = RunResult(False, str(e))
    except Exception as e:
        logger.error("Booking automation run crashed", exc_info=True)
        result = RunResult(False, f"{type(e).__name__}: {e}")

    # Notification is best-effort and never changes the exit code.
    try:
        notify_run_result(settings, result)
    except Exception:
        logger.warning("Failed to send run notification", exc_info=True)

    if not result.success:
        logger.error("Booking automation run failed (%s)", result.message)
        return 1

    logger.info("Booking automation run completed (%s)", result.message)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
