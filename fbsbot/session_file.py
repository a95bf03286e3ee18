from __future__ import annotations

import datetime as dt
import json
import logging
import os
import tempfile
from typing import Any, Iterable

logger = logging.getLogger(__name__)

Cookie = dict[str, Any]

# Keys accepted by WebDriver add_cookie().
_COOKIE_KEYS = ("name", "value", "domain", "path", "secure", "httpOnly", "expiry", "sameSite")


def load_session_cookies(path: str) -> list[Cookie] | None:
    """Return stored cookies, or None when no session was ever saved."""

    if not os.path.exists(path):
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        # An unreadable session just means logging in again.
        logger.warning("Session file %s is unreadable, ignoring it (%s)", path, type(e).__name__)
        return []

    if not isinstance(raw, dict):
        return []

    stored = raw.get("cookies")
    if not isinstance(stored, list):
        return []

    cookies: list[Cookie] = []
    for item in stored:
        if not isinstance(item, dict) or "name" not in item or "value" not in item:
            continue
        cookies.append({k: item[k] for k in _COOKIE_KEYS if k in item})
    return cookies


def save_session_cookies(path: str, cookies: Iterable[Cookie]) -> None:
    data = {
        "saved_at": dt.datetime.now(tz=dt.timezone.utc).isoformat(timespec="seconds"),
        "cookies": [{k: c[k] for k in _COOKIE_KEYS if k in c} for c in cookies],
    }

    folder = os.path.dirname(os.path.abspath(path))
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)

    # Atomic write
    with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
        json.dump(data, tf, ensure_ascii=False, indent=2)
        tmp_name = tf.name

    os.replace(tmp_name, path)
