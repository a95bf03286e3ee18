from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from selenium import webdriver

from fbsbot.auth import authenticate_if_needed
from fbsbot.booking import perform_booking
from fbsbot.config import Settings
from fbsbot.domain import RunResult
from fbsbot.selenium_provider import start_driver

logger = logging.getLogger(__name__)


@contextmanager
def browser_session(settings: Settings) -> Iterator[webdriver.Chrome]:
    """One browser per run, quit exactly once on every exit path."""

    logger.info("Starting browser (headless=%s)", settings.headless)
    driver = start_driver(headless=settings.headless)
    try:
        driver.set_page_load_timeout(settings.page_load_timeout_seconds)
        yield driver
    finally:
        try:
            driver.quit()
        except Exception:
            logger.warning("Failed to quit driver cleanly", exc_info=True)


def run_once(settings: Settings, *, auth_only: bool = False) -> RunResult:
    with browser_session(settings) as driver:
        auth_result = authenticate_if_needed(driver, settings)
        if not auth_result.success:
            logger.error("Authentication failed (%s)", auth_result.message)
            return RunResult(False, f"Authentication failed: {auth_result.message}")
        logger.info("Authentication completed (%s)", auth_result.message)

        if auth_only:
            return auth_result

        booking_result = perform_booking(driver, settings)
        if not booking_result.success:
            logger.error("Booking failed (%s)", booking_result.message)
            return RunResult(False, f"Booking failed: {booking_result.message}")
        logger.info("Booking completed (%s)", booking_result.message)
        return booking_result
