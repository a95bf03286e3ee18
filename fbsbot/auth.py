from __future__ import annotations

import logging

from selenium import webdriver
from selenium.common.exceptions import WebDriverException

from fbsbot.config import AUTH_ENV_KEYS, Settings, require_settings
from fbsbot.domain import AuthenticationFailure, ConfigurationError, RunResult, SessionProbeFailure
from fbsbot.pipeline import Step, first_failure, run_pipeline
from fbsbot.selenium_provider import (
    enter_email,
    enter_password,
    open_page,
    restore_session,
    save_debug_artifacts,
    submit_email,
    submit_password,
    use_password_instead,
    wait_for_identity_provider,
    wait_for_url,
)
from fbsbot.session_file import load_session_cookies, save_session_cookies

logger = logging.getLogger(__name__)


def home_url(booking_page_url: str) -> str:
    return booking_page_url.rstrip("/") + "/home"


def is_session_usable(driver: webdriver.Chrome, settings: Settings) -> bool:
    """Probe the stored session against the protected booking page.

    Any failure means "not usable"; the caller falls back to a full login.
    """

    logger.info("Validating stored authentication state")

    try:
        cookies = load_session_cookies(settings.session_file)
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Stored session could not be read, re-authentication required (%s: %s)", type(e).__name__, e)
        return False
    if not cookies:
        logger.info("No stored session found (%s)", settings.session_file)
        return False

    try:
        added = restore_session(driver, booking_page_url=settings.booking_page_url, cookies=cookies)
        logger.debug("Restored %d cookies, opening %s", added, settings.booking_page_url)
        driver.set_page_load_timeout(settings.page_load_timeout_seconds)
        driver.get(settings.booking_page_url)
        current_url = driver.current_url
    except (SessionProbeFailure, WebDriverException) as e:
        logger.warning("Auth validation failed, re-authentication required (%s: %s)", type(e).__name__, e)
        return False

    # Expired sessions bounce to a login page.
    is_logged_in = "login" not in current_url.lower()
    logger.info("Auth validation completed (url=%s, logged_in=%s)", current_url, is_logged_in)
    return is_logged_in


def _save_session(driver: webdriver.Chrome, session_file: str) -> None:
    cookies = driver.get_cookies()
    if not cookies:
        raise AuthenticationFailure("Login finished without any session cookies", current_url=driver.current_url)
    save_session_cookies(session_file, cookies)


def _login_steps(driver: webdriver.Chrome, settings: Settings) -> list[Step]:
    wait = settings.ui_wait_timeout_seconds
    booking_page_url = settings.booking_page_url
    session_file = settings.session_file
    email = settings.msft_email
    password = settings.msft_password

    return [
        ("open_booking_site", lambda: open_page(driver, booking_page_url)),
        ("enter_email", lambda: enter_email(driver, email, wait_seconds=wait)),
        ("submit_email", lambda: submit_email(driver, wait_seconds=wait)),
        ("wait_for_identity_provider", lambda: wait_for_identity_provider(driver, wait_seconds=wait)),
        ("use_password_instead", lambda: use_password_instead(driver, wait_seconds=wait)),
        ("enter_password", lambda: enter_password(driver, password, wait_seconds=wait)),
        ("submit_password", lambda: submit_password(driver, wait_seconds=wait)),
        (
            "wait_for_home_redirect",
            lambda: wait_for_url(
                driver,
                home_url(booking_page_url),
                wait_seconds=settings.auth_redirect_timeout_seconds,
            ),
        ),
        ("save_session", lambda: _save_session(driver, session_file)),
    ]


def perform_authentication(driver: webdriver.Chrome, settings: Settings) -> RunResult:
    logger.info("Starting authentication flow (url=%s)", settings.booking_page_url)

    # A stale session would otherwise skip the login form.
    try:
        driver.delete_all_cookies()
    except WebDriverException:
        logger.debug("Could not clear cookies before login", exc_info=True)

    results = run_pipeline(driver, _login_steps(driver, settings))
    failed = first_failure(results)
    if failed is not None:
        logger.error("Authentication failed at step %s", failed.name)
        save_debug_artifacts(driver, folder=settings.log_dir, tag="auth")
        return RunResult(False, failed.message)

    logger.info("Authentication successful, session saved to %s", settings.session_file)
    return RunResult(True, "New authentication completed")


def authenticate_if_needed(driver: webdriver.Chrome, settings: Settings) -> RunResult:
    logger.debug("Checking authentication requirement")
    try:
        require_settings(settings, AUTH_ENV_KEYS)
    except ConfigurationError as e:
        logger.error("Authentication not configured (%s)", e)
        return RunResult(False, str(e))

    if is_session_usable(driver, settings):
        logger.info("Using existing authentication")
        return RunResult(True, "Use existing valid authentication")

    logger.info("Authentication required, starting new flow")
    return perform_authentication(driver, settings)
