from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from fbsbot.config import Settings
from fbsbot.domain import RunResult
from fbsbot.notifier import NotificationError, broadcast, format_run_result, notify_run_result


def _settings(*, chat_ids: tuple[str, ...] = ("1", "2", "3"), attempts: int = 2) -> Settings:
    # Tests must never hit the network: send_telegram_message is always patched.
    return Settings(
        telegram_bot_token="TEST_TOKEN",
        telegram_chat_ids=chat_ids,
        notify_retry_attempts=attempts,
        booking_date="2026-10-20",
        is_github_action=False,
    )


def test_disabled_without_token() -> None:
    with patch("fbsbot.notifier.send_telegram_message") as send_msg:
        notify_run_result(Settings(telegram_chat_ids=("1",)), RunResult(True, "ok"))
    send_msg.assert_not_called()


def test_result_is_sent_to_every_chat() -> None:
    settings = _settings()

    with patch("fbsbot.notifier.send_telegram_message") as send_msg:
        notify_run_result(settings, RunResult(False, "Booking failed: Step 'accept_terms' failed"))

    assert [c.kwargs["chat_id"] for c in send_msg.call_args_list] == ["1", "2", "3"]
    text = send_msg.call_args.kwargs["text"]
    assert "FAILED" in text
    assert "2026-10-20" in text
    assert "accept_terms" in text


def test_one_failing_chat_does_not_stop_the_others() -> None:
    settings = _settings(attempts=1)

    def _send(*, bot_token: str, chat_id: str, text: str) -> None:
        if chat_id == "2":
            raise httpx.ConnectError("unreachable")

    with patch("fbsbot.notifier.send_telegram_message", side_effect=_send) as send_msg:
        with pytest.raises(NotificationError, match="recipients: 2"):
            broadcast(settings, "hello")

    assert send_msg.call_count == 3


def test_transient_http_error_is_retried() -> None:
    settings = _settings(chat_ids=("1",), attempts=2)

    with (
        patch("fbsbot.notifier.send_telegram_message", side_effect=[httpx.ReadTimeout("slow"), None]) as send_msg,
        patch("tenacity.nap.time.sleep"),
    ):
        broadcast(settings, "hello")

    assert send_msg.call_count == 2


def test_api_error_is_not_retried() -> None:
    settings = _settings(chat_ids=("1",), attempts=3)

    with patch("fbsbot.notifier.send_telegram_message", side_effect=NotificationError("Telegram API error: chat not found")) as send_msg:
        with pytest.raises(NotificationError):
            broadcast(settings, "hello")

    assert send_msg.call_count == 1


def test_format_run_result_success() -> None:
    assert format_run_result(RunResult(True, "Booking process completed")) == "Booking run succeeded\nBooking process completed"
