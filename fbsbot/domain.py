from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    message: str


@dataclass(frozen=True)
class StepResult:
    """Outcome of one named step of a UI pipeline."""

    name: str
    success: bool
    message: str


@dataclass(frozen=True)
class RunResult:
    success: bool
    message: str


class BookingBotError(RuntimeError):
    """Base error. Carries where in the UI flow it happened, when known."""

    def __init__(self, message: str, *, step: str | None = None, current_url: str | None = None):
        super().__init__(message)
        self.step = step
        self.current_url = current_url


class ConfigurationError(BookingBotError):
    """A required setting is absent or malformed. Raised before any UI work."""


class ValidationError(BookingBotError):
    """Booking date or time breaks the booking window rules."""


class SessionProbeFailure(BookingBotError):
    """Stored session could not be restored or did not reach the protected page.

    Not fatal: the gate falls back to a full login.
    """


class AuthenticationFailure(BookingBotError):
    pass


class BookingFailure(BookingBotError):
    pass
