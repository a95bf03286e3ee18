from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from selenium import webdriver

from fbsbot.config import BOOKING_ENV_KEYS, Settings, require_settings
from fbsbot.domain import BookingBotError, BookingFailure, RunResult, ValidationError
from fbsbot.pipeline import Step, first_failure, run_pipeline
from fbsbot.selenium_provider import (
    accept_terms,
    add_co_booker,
    confirm_booking,
    fill_purpose,
    go_to_next_month,
    make_booking,
    needs_next_month,
    open_date_picker,
    open_page,
    restore_session,
    save_debug_artifacts,
    search_availability,
    search_facility,
    select_calendar_date,
    select_time_range,
    select_time_slot,
)
from fbsbot.session_file import load_session_cookies
from fbsbot.validation import (
    BOOKING_WINDOW_DAYS,
    parse_booking_date,
    singapore_today,
    validate_booking_date,
    validate_booking_time,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingRequest:
    booking_date: dt.date
    start: str
    end: str
    facility: str
    purpose: str
    co_booker: str
    confirm: bool


def resolve_booking_date(settings: Settings, today: dt.date) -> dt.date | str | None:
    """Date to book for this run.

    Scheduled (GitHub Action) runs always book the furthest allowed day.
    Manual runs use BOOKING_DATE as given; an unparseable value is passed
    through so validation can reject it.
    """

    if settings.is_github_action:
        return today + dt.timedelta(days=BOOKING_WINDOW_DAYS)
    return parse_booking_date(settings.booking_date) or settings.booking_date


def build_booking_request(settings: Settings, today: dt.date) -> BookingRequest:
    require_settings(settings, BOOKING_ENV_KEYS)

    candidate = resolve_booking_date(settings, today)
    logger.debug("Running date validation (booking_date=%s, today=%s)", candidate, today)
    date_result = validate_booking_date(candidate, today)
    if not date_result.is_valid:
        raise ValidationError(date_result.message)
    logger.info("Date validation passed (%s)", date_result.message)

    time_result = validate_booking_time(settings.booking_time_start, settings.booking_time_end)
    if not time_result.is_valid:
        raise ValidationError(time_result.message)
    logger.info("Time validation passed (%s)", time_result.message)

    booking_date = parse_booking_date(candidate)
    return BookingRequest(
        booking_date=booking_date,
        start=settings.booking_time_start,
        end=settings.booking_time_end,
        facility=settings.booking_facility,
        purpose=settings.booking_purpose,
        co_booker=settings.booking_cobooker,
        confirm=not settings.is_booking_debug,
    )


def _restore_stored_session(driver: webdriver.Chrome, settings: Settings) -> None:
    cookies = load_session_cookies(settings.session_file or "")
    if not cookies:
        raise BookingFailure(f"No stored session in {settings.session_file}, authenticate first")
    restore_session(driver, booking_page_url=settings.booking_page_url or "", cookies=cookies)


def _booking_steps(
    driver: webdriver.Chrome,
    settings: Settings,
    request: BookingRequest,
    today: dt.date,
) -> list[Step]:
    wait = settings.ui_wait_timeout_seconds

    steps: list[Step] = [
        ("restore_session", lambda: _restore_stored_session(driver, settings)),
        ("open_booking_page", lambda: open_page(driver, settings.booking_page_url or "")),
        ("open_date_picker", lambda: open_date_picker(driver, wait_seconds=wait)),
    ]
    if needs_next_month(request.booking_date, today):
        steps.append(("go_to_next_month", lambda: go_to_next_month(driver, wait_seconds=wait)))

    steps += [
        ("select_date", lambda: select_calendar_date(driver, request.booking_date, wait_seconds=wait)),
        ("search_facility", lambda: search_facility(driver, request.facility, wait_seconds=wait)),
        ("search_availability", lambda: search_availability(driver, wait_seconds=wait)),
        ("select_time_slot", lambda: select_time_slot(driver, wait_seconds=wait)),
        ("make_booking", lambda: make_booking(driver, wait_seconds=wait)),
        (
            "select_time_range",
            lambda: select_time_range(
                driver, request.booking_date, start=request.start, end=request.end, wait_seconds=wait
            ),
        ),
        (
            "fill_purpose",
            lambda: fill_purpose(
                driver, request.purpose, settle_seconds=settings.form_settle_seconds, wait_seconds=wait
            ),
        ),
        ("add_co_booker", lambda: add_co_booker(driver, request.co_booker, wait_seconds=wait)),
        ("accept_terms", lambda: accept_terms(driver, wait_seconds=wait)),
    ]

    if request.confirm:
        steps.append(
            (
                "confirm_booking",
                lambda: confirm_booking(driver, settle_seconds=settings.confirm_settle_seconds, wait_seconds=wait),
            )
        )
    return steps


def perform_booking(driver: webdriver.Chrome, settings: Settings, *, today: dt.date | None = None) -> RunResult:
    """Fill and (unless in debug mode) confirm one room booking.

    Configuration and validation run before the browser is touched.
    """

    if today is None:
        today = singapore_today()

    try:
        request = build_booking_request(settings, today)
    except BookingBotError as e:
        logger.error("Booking aborted before UI (%s: %s)", type(e).__name__, e)
        return RunResult(False, str(e))

    logger.info(
        "Booking %s %s-%s at %s (confirm=%s)",
        request.booking_date.isoformat(),
        request.start,
        request.end,
        request.facility,
        request.confirm,
    )

    results = run_pipeline(driver, _booking_steps(driver, settings, request, today))
    failed = first_failure(results)
    if failed is not None:
        logger.error("Booking process failed at step %s (booking_date=%s)", failed.name, request.booking_date)
        save_debug_artifacts(driver, folder=settings.log_dir, tag="booking")
        return RunResult(False, failed.message)

    if not request.confirm:
        logger.info("Booking confirmation skipped (debug mode)")
        return RunResult(True, "Booking form filled, confirmation skipped (debug mode)")

    return RunResult(True, "Booking process completed")
