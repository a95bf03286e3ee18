from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv

from fbsbot.domain import ConfigurationError
from fbsbot.logging_config import LOG_LEVELS

# Environment key -> Settings field.
ENV_FIELDS: dict[str, str] = {
    "STORAGESTATE_FP": "session_file",
    "BOOKING_PAGE_URL": "booking_page_url",
    "MSFT_EMAIL": "msft_email",
    "MSFT_PWD": "msft_password",
    "IS_GITHUB_ACTION": "is_github_action",
    "BOOKING_DATE": "booking_date",
    "BOOKING_TIME_START": "booking_time_start",
    "BOOKING_TIME_END": "booking_time_end",
    "BOOKING_FACILITY": "booking_facility",
    "BOOKING_PURPOSE": "booking_purpose",
    "BOOKING_COBOOKER": "booking_cobooker",
    "IS_BOOKING_DEBUG": "is_booking_debug",
}

AUTH_ENV_KEYS: tuple[str, ...] = ("STORAGESTATE_FP", "BOOKING_PAGE_URL", "MSFT_EMAIL", "MSFT_PWD")

BOOKING_ENV_KEYS: tuple[str, ...] = (
    "STORAGESTATE_FP",
    "BOOKING_PAGE_URL",
    "IS_GITHUB_ACTION",
    "BOOKING_DATE",
    "BOOKING_TIME_START",
    "BOOKING_TIME_END",
    "BOOKING_FACILITY",
    "BOOKING_PURPOSE",
    "BOOKING_COBOOKER",
    "IS_BOOKING_DEBUG",
)


def _parse_telegram_chat_ids(raw: str) -> tuple[str, ...]:
    # TELEGRAM_CHAT_ID supports a single value or a comma-separated list.
    #   TELEGRAM_CHAT_ID=123456789
    #   TELEGRAM_CHAT_ID=123456789,-1001234567890
    parts = [p.strip() for p in raw.split(",")]
    parts = [p for p in parts if p]

    seen: set[str] = set()
    result: list[str] = []
    for p in parts:
        # Groups/supergroups can be negative.
        try:
            int(p)
        except ValueError as e:
            raise ConfigurationError(f"Invalid TELEGRAM_CHAT_ID value: {p!r}. Expected integer chat id.") from e

        if p == "0":
            raise ConfigurationError("Invalid TELEGRAM_CHAT_ID value: '0' is not a valid chat id")

        if p in seen:
            continue
        seen.add(p)
        result.append(p)

    if not result:
        raise ConfigurationError("TELEGRAM_CHAT_ID is empty. Provide at least one chat id.")

    return tuple(result)


@dataclass(frozen=True)
class Settings:
    # Authentication
    session_file: str | None = None
    booking_page_url: str | None = None
    msft_email: str | None = None
    msft_password: str | None = None

    # Booking
    is_github_action: bool | None = None
    booking_date: str | None = None
    booking_time_start: str | None = None
    booking_time_end: str | None = None
    booking_facility: str | None = None
    booking_purpose: str | None = None
    booking_cobooker: str | None = None
    # Debug mode fills the whole form but never clicks Confirm.
    is_booking_debug: bool | None = None

    headless: bool = True

    # Selenium tuning
    page_load_timeout_seconds: int = 30
    ui_wait_timeout_seconds: int = 30
    auth_redirect_timeout_seconds: int = 10
    # Fixed delays where the site exposes no readiness signal.
    # Known to be too short on slow networks.
    form_settle_seconds: float = 10
    confirm_settle_seconds: float = 10

    # Run notifications (optional)
    telegram_bot_token: str | None = None
    telegram_chat_ids: tuple[str, ...] = ()
    notify_retry_attempts: int = 2

    log_level: str = "INFO"
    log_dir: str = "logs"
    ci: bool = False

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_ids)


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_bool(name: str, raw: str | None) -> bool | None:
    if raw is None:
        return None
    lowered = raw.strip().lower()
    if lowered in {"1", "true", "yes"}:
        return True
    if lowered in {"0", "false", "no"}:
        return False
    raise ConfigurationError(f"Invalid {name} value: {raw!r}. Expected true or false.")


def _parse_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {name} value: {raw!r}. Expected integer.") from e
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}")
    return value


def load_settings(dotenv_path: str | None = None) -> Settings:
    """Read settings from the environment (and .env) without requiring any key.

    Malformed values fail immediately. Missing keys are checked per operation
    with ``require_settings``.
    """

    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    is_booking_debug = _parse_bool("IS_BOOKING_DEBUG", _optional("IS_BOOKING_DEBUG"))

    # Debug runs are watched, so the browser is visible unless HEADLESS says otherwise.
    headless = _parse_bool("HEADLESS", _optional("HEADLESS"))
    if headless is None:
        headless = not is_booking_debug

    chat_ids_raw = os.getenv("TELEGRAM_CHAT_ID")
    telegram_chat_ids = _parse_telegram_chat_ids(chat_ids_raw) if chat_ids_raw is not None else ()

    log_level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Invalid LOG_LEVEL value: {log_level!r}")

    return Settings(
        session_file=_optional("STORAGESTATE_FP"),
        booking_page_url=_optional("BOOKING_PAGE_URL"),
        msft_email=_optional("MSFT_EMAIL"),
        msft_password=_optional("MSFT_PWD"),
        is_github_action=_parse_bool("IS_GITHUB_ACTION", _optional("IS_GITHUB_ACTION")),
        booking_date=_optional("BOOKING_DATE"),
        booking_time_start=_optional("BOOKING_TIME_START"),
        booking_time_end=_optional("BOOKING_TIME_END"),
        booking_facility=_optional("BOOKING_FACILITY"),
        booking_purpose=_optional("BOOKING_PURPOSE"),
        booking_cobooker=_optional("BOOKING_COBOOKER"),
        is_booking_debug=is_booking_debug,
        headless=headless,
        page_load_timeout_seconds=_parse_int("PAGE_LOAD_TIMEOUT_SECONDS", 30, minimum=1),
        ui_wait_timeout_seconds=_parse_int("UI_WAIT_TIMEOUT_SECONDS", 30, minimum=1),
        auth_redirect_timeout_seconds=_parse_int("AUTH_REDIRECT_TIMEOUT_SECONDS", 10, minimum=1),
        form_settle_seconds=_parse_int("FORM_SETTLE_SECONDS", 10),
        confirm_settle_seconds=_parse_int("CONFIRM_SETTLE_SECONDS", 10),
        telegram_bot_token=_optional("TELEGRAM_BOT_TOKEN"),
        telegram_chat_ids=telegram_chat_ids,
        notify_retry_attempts=_parse_int("NOTIFY_RETRY_ATTEMPTS", 2, minimum=1),
        log_level=log_level,
        log_dir=_optional("LOG_DIR") or "logs",
        ci=bool(_parse_bool("CI", _optional("CI"))),
    )


def missing_settings(settings: Settings, keys: Iterable[str]) -> list[str]:
    missing: list[str] = []
    for key in keys:
        value = getattr(settings, ENV_FIELDS[key])
        if value is None or value == "":
            missing.append(key)
    return missing


def require_settings(settings: Settings, keys: Iterable[str]) -> None:
    """Fail with every missing key listed at once."""

    missing = missing_settings(settings, keys)
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
