from __future__ import annotations

import pytest

from fbsbot.config import (
    AUTH_ENV_KEYS,
    BOOKING_ENV_KEYS,
    ENV_FIELDS,
    load_settings,
    missing_settings,
    require_settings,
)
from fbsbot.domain import ConfigurationError

_OPTIONAL_KEYS = (
    "HEADLESS",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "LOG_LEVEL",
    "LOG_DIR",
    "CI",
    "UI_WAIT_TIMEOUT_SECONDS",
    "NOTIFY_RETRY_ATTEMPTS",
)

FULL_ENV = {
    "STORAGESTATE_FP": ".auth/session.json",
    "BOOKING_PAGE_URL": "https://fbs.example.edu",
    "MSFT_EMAIL": "someone@example.edu",
    "MSFT_PWD": "secret",
    "IS_GITHUB_ACTION": "false",
    "BOOKING_DATE": "2026-10-20",
    "BOOKING_TIME_START": "10:00",
    "BOOKING_TIME_END": "12:00",
    "BOOKING_FACILITY": "GSR 2-1",
    "BOOKING_PURPOSE": "Project discussion",
    "BOOKING_COBOOKER": "friend@example.edu",
    "IS_BOOKING_DEBUG": "true",
}


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> str:
    for key in list(ENV_FIELDS) + list(_OPTIONAL_KEYS):
        # setenv first so teardown also drops whatever load_dotenv adds.
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    # An empty .env so a developer's real one is never picked up.
    dotenv = tmp_path / ".env"
    dotenv.write_text("")
    return str(dotenv)


def _set_env(monkeypatch: pytest.MonkeyPatch, **overrides: str | None) -> None:
    for key, value in {**FULL_ENV, **overrides}.items():
        if value is None:
            monkeypatch.delenv(key, raising=False)
        else:
            monkeypatch.setenv(key, value)


def test_full_env_loads(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch)

    settings = load_settings(dotenv_path=clean_env)
    require_settings(settings, AUTH_ENV_KEYS + BOOKING_ENV_KEYS)

    assert settings.booking_page_url == "https://fbs.example.edu"
    assert settings.is_github_action is False
    assert settings.is_booking_debug is True
    # Debug runs show the browser unless HEADLESS says otherwise.
    assert settings.headless is False
    assert settings.notifications_enabled is False


def test_missing_time_end_is_reported(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch, BOOKING_TIME_END=None)

    settings = load_settings(dotenv_path=clean_env)
    require_settings(settings, AUTH_ENV_KEYS)

    with pytest.raises(ConfigurationError, match=r"Missing required environment variables: BOOKING_TIME_END$"):
        require_settings(settings, BOOKING_ENV_KEYS)


def test_all_missing_keys_are_listed_together(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch, MSFT_PWD=None, BOOKING_DATE="", BOOKING_COBOOKER=None)

    settings = load_settings(dotenv_path=clean_env)
    assert missing_settings(settings, AUTH_ENV_KEYS + BOOKING_ENV_KEYS) == [
        "MSFT_PWD",
        "BOOKING_DATE",
        "BOOKING_COBOOKER",
    ]

    with pytest.raises(ConfigurationError) as excinfo:
        require_settings(settings, AUTH_ENV_KEYS + BOOKING_ENV_KEYS)
    assert str(excinfo.value) == "Missing required environment variables: MSFT_PWD, BOOKING_DATE, BOOKING_COBOOKER"


def test_empty_environment_loads_without_error(clean_env: str) -> None:
    settings = load_settings(dotenv_path=clean_env)
    assert missing_settings(settings, AUTH_ENV_KEYS) == list(AUTH_ENV_KEYS)
    assert settings.headless is True


def test_flags_are_case_insensitive(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch, IS_GITHUB_ACTION="TRUE", IS_BOOKING_DEBUG="False")

    settings = load_settings(dotenv_path=clean_env)
    assert settings.is_github_action is True
    assert settings.is_booking_debug is False
    assert settings.headless is True


def test_invalid_flag_is_rejected(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch, IS_BOOKING_DEBUG="maybe")

    with pytest.raises(ConfigurationError, match="Invalid IS_BOOKING_DEBUG"):
        load_settings(dotenv_path=clean_env)


def test_headless_override(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch, IS_BOOKING_DEBUG="true", HEADLESS="1")
    assert load_settings(dotenv_path=clean_env).headless is True


def test_invalid_timeout_is_rejected(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch, UI_WAIT_TIMEOUT_SECONDS="soon")

    with pytest.raises(ConfigurationError, match="Invalid UI_WAIT_TIMEOUT_SECONDS"):
        load_settings(dotenv_path=clean_env)


def test_telegram_chat_ids_are_parsed(monkeypatch: pytest.MonkeyPatch, clean_env: str) -> None:
    _set_env(monkeypatch, TELEGRAM_BOT_TOKEN="t", TELEGRAM_CHAT_ID="1, 2,2,, -1003, 1")

    settings = load_settings(dotenv_path=clean_env)
    assert settings.telegram_chat_ids == ("1", "2", "-1003")
    assert settings.notifications_enabled is True


@pytest.mark.parametrize("raw, message", [("abc", "Invalid TELEGRAM_CHAT_ID"), ("0", "not a valid chat id"), (" , ,", "is empty")])
def test_bad_telegram_chat_ids_are_rejected(monkeypatch: pytest.MonkeyPatch, clean_env: str, raw: str, message: str) -> None:
    _set_env(monkeypatch, TELEGRAM_CHAT_ID=raw)

    with pytest.raises(ConfigurationError, match=message):
        load_settings(dotenv_path=clean_env)


def test_dotenv_does_not_override_existing_env(monkeypatch: pytest.MonkeyPatch, clean_env: str, tmp_path) -> None:
    _set_env(monkeypatch)

    dotenv = tmp_path / "other.env"
    dotenv.write_text("BOOKING_FACILITY=Somewhere else\n")

    settings = load_settings(dotenv_path=str(dotenv))
    assert settings.booking_facility == "GSR 2-1"


def test_dotenv_fills_missing_values(monkeypatch: pytest.MonkeyPatch, clean_env: str, tmp_path) -> None:
    _set_env(monkeypatch, BOOKING_TIME_END=None)

    dotenv = tmp_path / "other.env"
    dotenv.write_text("BOOKING_TIME_END=11:30\n")

    settings = load_settings(dotenv_path=str(dotenv))
    assert settings.booking_time_end == "11:30"
