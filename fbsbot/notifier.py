from __future__ import annotations

import logging

import httpx
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fbsbot.config import Settings
from fbsbot.domain import RunResult

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class NotificationError(RuntimeError):
    pass


def send_telegram_message(*, bot_token: str, chat_id: str, text: str, timeout_seconds: float = 20.0) -> None:
    payload = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }

    with httpx.Client(base_url=TELEGRAM_API_URL, timeout=timeout_seconds) as client:
        r = client.post(f"/bot{bot_token}/sendMessage", json=payload)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok", False):
            raise NotificationError(f"Telegram API error: {data.get('description', data)}")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome is not None else None
    sleep_seconds = getattr(retry_state.next_action, "sleep", 0)
    logger.info(
        "Telegram delivery attempt %s failed (%s), retrying in %.0fs",
        retry_state.attempt_number,
        type(exc).__name__ if exc else "unknown",
        sleep_seconds,
    )


def _send_with_retry(settings: Settings, chat_id: str, text: str) -> None:
    decorated = retry(
        stop=stop_after_attempt(settings.notify_retry_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(httpx.HTTPError),
        before_sleep=_log_before_sleep,
        reraise=True,
    )(send_telegram_message)

    decorated(bot_token=settings.telegram_bot_token, chat_id=chat_id, text=text)


def format_run_result(result: RunResult, *, booking_date: str | None = None) -> str:
    status = "Booking run succeeded" if result.success else "Booking run FAILED"
    lines = [status]
    if booking_date:
        lines.append(f"Date: {booking_date}")
    lines.append(result.message)
    return "\n".join(lines)


def broadcast(settings: Settings, text: str) -> None:
    """Send to every configured chat; raise once at the end if any send failed."""

    if not settings.notifications_enabled:
        logger.debug("Telegram notifications disabled")
        return

    failed: list[str] = []
    for chat_id in settings.telegram_chat_ids:
        try:
            _send_with_retry(settings, chat_id, text)
        except (httpx.HTTPError, NotificationError) as e:
            # Keep going so the other chats still get the message.
            logger.warning("Failed to send telegram message to chat_id=%s (%s: %s)", chat_id, type(e).__name__, e)
            failed.append(chat_id)

    if failed:
        raise NotificationError(f"Failed to send telegram message to some recipients: {', '.join(failed)}")


def notify_run_result(settings: Settings, result: RunResult) -> None:
    booking_date = settings.booking_date if not settings.is_github_action else None
    broadcast(settings, format_run_result(result, booking_date=booking_date))
