from __future__ import annotations

import datetime as dt
import logging
import os
import time
from typing import Sequence
from urllib.parse import urlsplit

from selenium import webdriver
from selenium.common.exceptions import (
    ElementClickInterceptedException,
    InvalidCookieDomainException,
    NoSuchElementException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import Select, WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from fbsbot.domain import SessionProbeFailure
from fbsbot.session_file import Cookie

logger = logging.getLogger(__name__)

MICROSOFT_LOGIN_HOST = "login.microsoftonline.com"
SMU_LOGIN_HOST = "login2.smu.edu.sg"

# The booking UI lives two (form: three) iframes deep.
CONTENT_FRAMES = ("frameBottom", "frameContent")
DETAILS_FRAMES = CONTENT_FRAMES + ("frameBookingDetails",)

# Scheduler cell for 08:30, any free cell opens the booking form.
DEFAULT_SLOT_CELL_INDEX = 35

_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_EMAIL_INPUT = (By.ID, "i0116")
_EMAIL_NEXT_BUTTON = (By.ID, "idSIButton9")
_USE_PASSWORD_LINK = (By.PARTIAL_LINK_TEXT, "Use your password instead")
_PASSWORD_INPUT = (By.ID, "passwordInput")
_PASSWORD_SUBMIT = (By.ID, "submitButton")

_DATE_INPUT = (By.ID, "DateBookingFrom_c1_textDate")
_CALENDAR_NEXT = (By.ID, "__calendar_nextArrow")
_FACILITY_SEARCH_INPUT = (
    By.CSS_SELECTOR,
    "#panel_SimpleSearch input[type='text'], #panel_SimpleSearch input:not([type]), #panel_SimpleSearch textarea",
)
_FACILITY_SEARCH_BUTTON = (By.ID, "panel_buttonSimpleSearch")
_SLOT_CELLS = (By.CSS_SELECTOR, ".scheduler_bluewhite_cell")
_SELECTED_SLOT = (By.CSS_SELECTOR, '.scheduler_bluewhite_event[title*="selected"]')
_START_TIME_SELECT = (By.ID, "bookingFormControl1_DropDownStartTime_c1")
_END_TIME_SELECT = (By.ID, "bookingFormControl1_DropDownEndTime_c1")
_PURPOSE_INPUT = (By.ID, "bookingFormControl1_TextboxPurpose_c1")
_KEYWORDS_INPUT = (
    By.XPATH,
    "//td[contains(normalize-space(.), 'Keywords')]//input[not(@type) or @type='text']",
)
_TERMS_CHECKBOX = (By.ID, "bookingFormControl1_TermsAndConditionsCheckbox_c1")


def format_calendar_title(booking_date: dt.date) -> str:
    # Calendar cells carry a title like "05-Nov-2026".
    return f"{booking_date.day:02d}-{_MONTH_ABBR[booking_date.month - 1]}-{booking_date.year}"


def format_time_option(booking_date: dt.date, hhmm: str) -> str:
    """Label of a start/end dropdown option, e.g. ``11/5/2026 8:30:00 AM``."""

    hours, minutes = (int(p) for p in hhmm.split(":"))
    suffix = "AM" if hours < 12 else "PM"
    hours_12 = hours % 12 or 12
    return f"{booking_date.month}/{booking_date.day}/{booking_date.year} {hours_12}:{minutes:02d}:00 {suffix}"


def needs_next_month(booking_date: dt.date, today: dt.date) -> bool:
    # Only handles one month forward within the same year. December -> January
    # is not detected; the 14-day window makes this the only case that matters.
    return booking_date.month - today.month == 1


def start_driver(*, headless: bool) -> webdriver.Chrome:
    options = Options()
    if headless:
        options.add_argument("--headless=new")
    options.add_argument("--disable-gpu")
    options.add_argument("--no-sandbox")
    options.add_argument("--window-size=1280,900")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-features=Translate,BackForwardCache")
    options.add_argument("--disable-background-timer-throttling")
    options.add_argument("--disable-renderer-backgrounding")

    service = Service(ChromeDriverManager().install())
    return webdriver.Chrome(service=service, options=options)


def current_url_or_none(driver: webdriver.Chrome) -> str | None:
    try:
        return driver.current_url
    except WebDriverException:
        return None


def save_debug_artifacts(driver: webdriver.Chrome, *, folder: str, tag: str) -> str | None:
    """Screenshot + HTML of the current page. Best-effort, returns the path prefix."""

    ts = int(time.time())
    prefix = os.path.join(folder, f"debug_{tag}_{ts}")
    try:
        os.makedirs(folder, exist_ok=True)
        driver.save_screenshot(f"{prefix}.png")
        with open(f"{prefix}.html", "w", encoding="utf-8") as f:
            f.write(driver.page_source)
    except (OSError, WebDriverException) as e:
        logger.warning("Failed to save debug artifacts (%s: %s)", type(e).__name__, e)
        return None
    logger.info("Saved debug artifacts to %s.png/.html", prefix)
    return prefix


def enter_frames(driver: webdriver.Chrome, frames: Sequence[str], *, wait_seconds: int) -> None:
    driver.switch_to.default_content()
    wait = WebDriverWait(driver, wait_seconds)
    for frame in frames:
        locator = (By.CSS_SELECTOR, f'iframe[id="{frame}"], iframe[name="{frame}"]')
        wait.until(EC.frame_to_be_available_and_switch_to_it(locator))


def _click(driver: webdriver.Chrome, locator: tuple[str, str], *, wait_seconds: int) -> None:
    el = WebDriverWait(driver, wait_seconds).until(EC.element_to_be_clickable(locator))
    try:
        el.click()
    except ElementClickInterceptedException:
        driver.execute_script("arguments[0].click();", el)


def _fill(driver: webdriver.Chrome, locator: tuple[str, str], text: str, *, wait_seconds: int) -> None:
    el = WebDriverWait(driver, wait_seconds).until(EC.visibility_of_element_located(locator))
    el.clear()
    el.send_keys(text)


def _select_option(driver: webdriver.Chrome, locator: tuple[str, str], option: str, *, wait_seconds: int) -> None:
    el = WebDriverWait(driver, wait_seconds).until(EC.presence_of_element_located(locator))
    select = Select(el)
    # Match by value first, then by label.
    try:
        select.select_by_value(option)
    except NoSuchElementException:
        select.select_by_visible_text(option)


# --- session -----------------------------------------------------------------


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def restore_session(driver: webdriver.Chrome, *, booking_page_url: str, cookies: Sequence[Cookie]) -> int:
    """Load stored cookies into the browser. Returns how many were applied."""

    # Cookies can only be set for the domain currently loaded. A static asset
    # keeps us on the booking host instead of bouncing to the login page.
    driver.get(f"{_origin(booking_page_url)}/favicon.ico")
    driver.delete_all_cookies()

    host = urlsplit(driver.current_url).hostname or ""
    added = 0
    for cookie in cookies:
        domain = str(cookie.get("domain", "")).lstrip(".")
        if domain and not host.endswith(domain):
            continue
        try:
            driver.add_cookie(dict(cookie))
        except InvalidCookieDomainException:
            logger.debug("Skipping cookie %s for domain %s", cookie.get("name"), domain)
            continue
        added += 1

    if not added:
        raise SessionProbeFailure(f"No stored cookies apply to {host or booking_page_url}")
    return added


# --- login -------------------------------------------------------------------


def open_page(driver: webdriver.Chrome, url: str) -> None:
    driver.get(url)


def enter_email(driver: webdriver.Chrome, email: str, *, wait_seconds: int) -> None:
    _fill(driver, _EMAIL_INPUT, email, wait_seconds=wait_seconds)


def submit_email(driver: webdriver.Chrome, *, wait_seconds: int) -> None:
    _click(driver, _EMAIL_NEXT_BUTTON, wait_seconds=wait_seconds)


def wait_for_identity_provider(driver: webdriver.Chrome, *, wait_seconds: int) -> str:
    """Wait until either the SMU password form or Microsoft's password choice is usable."""

    def _ready(d: webdriver.Chrome) -> bool:
        url = d.current_url
        if SMU_LOGIN_HOST in url:
            return bool(d.find_elements(*_PASSWORD_INPUT))
        if MICROSOFT_LOGIN_HOST in url:
            return bool(d.find_elements(*_USE_PASSWORD_LINK)) or bool(d.find_elements(*_PASSWORD_INPUT))
        return False

    WebDriverWait(driver, wait_seconds).until(_ready)
    return driver.current_url


def use_password_instead(driver: webdriver.Chrome, *, wait_seconds: int) -> bool:
    """On the Microsoft page, pick the password option. Returns False when not needed."""

    if MICROSOFT_LOGIN_HOST not in driver.current_url:
        return False
    if not driver.find_elements(*_USE_PASSWORD_LINK):
        return False

    _click(driver, _USE_PASSWORD_LINK, wait_seconds=wait_seconds)
    WebDriverWait(driver, wait_seconds).until(EC.url_contains(SMU_LOGIN_HOST))
    return True


def enter_password(driver: webdriver.Chrome, password: str, *, wait_seconds: int) -> None:
    _fill(driver, _PASSWORD_INPUT, password, wait_seconds=wait_seconds)


def submit_password(driver: webdriver.Chrome, *, wait_seconds: int) -> None:
    _click(driver, _PASSWORD_SUBMIT, wait_seconds=wait_seconds)


def wait_for_url(driver: webdriver.Chrome, expected_url: str, *, wait_seconds: int) -> str:
    WebDriverWait(driver, wait_seconds).until(EC.url_contains(expected_url))
    return driver.current_url


# --- booking -----------------------------------------------------------------


def open_date_picker(driver: webdriver.Chrome, *, wait_seconds: int) -> None:
    enter_frames(driver, CONTENT_FRAMES, wait_seconds=wait_seconds)
    _click(driver, _DATE_INPUT, wait_seconds=wait_seconds)


def go_to_next_month(driver: webdriver.Chrome, *, wait_seconds: int) -> None:
    enter_frames(driver, CONTENT_FRAMES, wait_seconds=wait_seconds)
    _click(driver, _CALENDAR_NEXT, wait_seconds=wait_seconds)


def select_calendar_date(driver: webdriver.Chrome, booking_date: dt.date, *, wait_seconds: int) -> None:
    title = format_calendar_title(booking_date).lower()
    # Title casing differs between calendar skins, compare lowercased.
    locator = (
        By.XPATH,
        "//*[contains(translate(@title, 'ABCDEFGHIJKLMNOPQRSTUVWXYZ', 'abcdefghijklmnopqrstuvwxyz'), "
        f"'{title}')]",
    )
    enter_frames(driver, CONTENT_FRAMES, wait_seconds=wait_seconds)
    _click(driver, locator, wait_seconds=wait_seconds)


def search_facility(driver: webdriver.Chrome, facility: str, *, wait_seconds: int) -> None:
    enter_frames(driver, CONTENT_FRAMES, wait_seconds=wait_seconds)
    _fill(driver, _FACILITY_SEARCH_INPUT, facility, wait_seconds=wait_seconds)
    _click(driver, _FACILITY_SEARCH_BUTTON, wait_seconds=wait_seconds)
    WebDriverWait(driver, wait_seconds).until(EC.presence_of_element_located((By.PARTIAL_LINK_TEXT, facility)))


def search_availability(driver: webdriver.Chrome, *, wait_seconds: int) -> None:
    enter_frames(driver, CONTENT_FRAMES, wait_seconds=wait_seconds)
    _click(driver, (By.LINK_TEXT, "Search Availability"), wait_seconds=wait_seconds)


def select_time_slot(driver: webdriver.Chrome, *, cell_index: int = DEFAULT_SLOT_CELL_INDEX, wait_seconds: int) -> None:
    enter_frames(driver, CONTENT_FRAMES, wait_seconds=wait_seconds)
    wait = WebDriverWait(driver, wait_seconds)
    wait.until(lambda d: len(d.find_elements(*_SLOT_CELLS)) > cell_index)

    cell = driver.find_elements(*_SLOT_CELLS)[cell_index]
    # The cell sits under the scheduler overlay, a native click gets intercepted.
    driver.execute_script("arguments[0].click();", cell)
    wait.until(EC.presence_of_element_located(_SELECTED_SLOT))


def make_booking(driver: webdriver.Chrome, *, wait_seconds: int) -> None:
    enter_frames(driver, CONTENT_FRAMES, wait_seconds=wait_seconds)
    _click(driver, (By.LINK_TEXT, "Make Booking"), wait_seconds=wait_seconds)


def select_time_range(
    driver: webdriver.Chrome,
    booking_date: dt.date,
    *,
    start: str,
    end: str,
    wait_seconds: int,
) -> None:
    enter_frames(driver, DETAILS_FRAMES, wait_seconds=wait_seconds)
    _select_option(driver, _START_TIME_SELECT, format_time_option(booking_date, start), wait_seconds=wait_seconds)
    # Changing the start time reloads the end time dropdown.
    enter_frames(driver, DETAILS_FRAMES, wait_seconds=wait_seconds)
    _select_option(driver, _END_TIME_SELECT, format_time_option(booking_date, end), wait_seconds=wait_seconds)


def fill_purpose(driver: webdriver.Chrome, purpose: str, *, settle_seconds: float, wait_seconds: int) -> None:
    # The form re-renders its inputs while it finishes loading and exposes no
    # signal for it. Text typed before that is wiped.
    time.sleep(settle_seconds)
    enter_frames(driver, DETAILS_FRAMES, wait_seconds=wait_seconds)
    _fill(driver, _PURPOSE_INPUT, purpose, wait_seconds=wait_seconds)


def add_co_booker(driver: webdriver.Chrome, co_booker: str, *, wait_seconds: int) -> None:
    enter_frames(driver, DETAILS_FRAMES, wait_seconds=wait_seconds)
    _click(driver, (By.LINK_TEXT, "Add"), wait_seconds=wait_seconds)
    _fill(driver, _KEYWORDS_INPUT, co_booker, wait_seconds=wait_seconds)
    _click(driver, (By.LINK_TEXT, "Search"), wait_seconds=wait_seconds)
    _click(driver, (By.PARTIAL_LINK_TEXT, co_booker), wait_seconds=wait_seconds)


def accept_terms(driver: webdriver.Chrome, *, wait_seconds: int) -> None:
    enter_frames(driver, DETAILS_FRAMES, wait_seconds=wait_seconds)
    _click(driver, _TERMS_CHECKBOX, wait_seconds=wait_seconds)


def confirm_booking(driver: webdriver.Chrome, *, settle_seconds: float, wait_seconds: int) -> None:
    enter_frames(driver, DETAILS_FRAMES, wait_seconds=wait_seconds)
    _click(driver, (By.LINK_TEXT, "Confirm"), wait_seconds=wait_seconds)
    # No confirmation marker to wait for; give the submit time to land.
    time.sleep(settle_seconds)
