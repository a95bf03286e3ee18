from __future__ import annotations

import logging
from typing import Callable, Iterable

from selenium import webdriver

from fbsbot.domain import StepResult
from fbsbot.selenium_provider import current_url_or_none

logger = logging.getLogger(__name__)

Step = tuple[str, Callable[[], object]]


def _short_exc(exc: BaseException) -> str:
    # WebDriver messages carry a multi-line stacktrace; the first line is enough.
    msg = getattr(exc, "msg", None) or str(exc)
    msg = msg.strip().splitlines()[0] if msg.strip() else ""
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def run_step(driver: webdriver.Chrome, name: str, action: Callable[[], object]) -> StepResult:
    try:
        action()
    except Exception as e:
        current_url = current_url_or_none(driver)
        logger.error("Step %s failed (url=%s, %s)", name, current_url, _short_exc(e))
        return StepResult(name, False, f"Step '{name}' failed at {current_url}: {_short_exc(e)}")

    logger.debug("Step %s done", name)
    return StepResult(name, True, "ok")


def run_pipeline(driver: webdriver.Chrome, steps: Iterable[Step]) -> list[StepResult]:
    """Run named steps in order, stopping at the first failure.

    The last result is the failing one, if any.
    """

    results: list[StepResult] = []
    for name, action in steps:
        logger.debug("Step %s started", name)
        result = run_step(driver, name, action)
        results.append(result)
        if not result.success:
            break
    return results


def first_failure(results: Iterable[StepResult]) -> StepResult | None:
    for result in results:
        if not result.success:
            return result
    return None
