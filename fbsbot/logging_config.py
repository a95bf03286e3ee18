from __future__ import annotations

import logging
import os

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(level: str = "INFO", log_dir: str | None = "logs") -> None:
    """Console logging, plus ``<log_dir>/logging.log`` unless log_dir is None (CI)."""

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, "logging.log"), encoding="utf-8"))

    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def normalize_level(raw: str | None, default: str = "INFO") -> str:
    """Upper-cased level name, or ``default`` when ``raw`` is not one."""

    level = (raw or "").strip().upper()
    return level if level in LOG_LEVELS else default
