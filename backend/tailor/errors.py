"""Error taxonomy for the diagnosis and preview pipelines.

Provider failures are recorded per attempt and never shown to end users;
only `ValidationError` messages and the generic `ChainExhausted.user_message`
cross the HTTP boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from backend.tailor.chain import Capability, Failure


class ErrorKind(str, Enum):
    """Why a single provider attempt failed."""
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    PROVIDER_ERROR = "provider_error"
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_CREDENTIAL = "missing_credential"


class TailorError(Exception):
    """Base class for all errors raised by the backend."""


class ValidationError(TailorError):
    """Request rejected before any provider call (e.g. no image)."""


class ProviderError(TailorError):
    """One candidate in a chain failed."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.PROVIDER_ERROR) -> None:
        super().__init__(message)
        self.kind = kind


class PollTimeout(ProviderError):
    """Submit/poll job never reached a terminal status within the poll ceiling."""

    def __init__(self, job_id: str, polls: int) -> None:
        super().__init__(
            f"job {job_id} still pending after {polls} polls", ErrorKind.TIMEOUT
        )
        self.job_id = job_id
        self.polls = polls


_USER_MESSAGES = {
    "transcription": "Could not transcribe the audio.",
    "vision": "Failed to analyze the garment.",
    "reasoning": "Failed to generate repair instructions.",
    "chat": "Failed to process chat.",
    "synthesis": "Preview generation unavailable.",
}


class ChainExhausted(TailorError):
    """Every candidate in a chain failed.

    Carries the full attempt history in priority order.
    """

    def __init__(self, capability: Capability, attempts: list[Failure]) -> None:
        self.capability = capability
        self.attempts = attempts
        tried = ", ".join(f"{a.provider} ({a.reason.value})" for a in attempts) or "none"
        super().__init__(f"{capability.value} chain exhausted; tried: {tried}")

    @property
    def user_message(self) -> str:
        """Generic message safe to return to the caller."""
        return _USER_MESSAGES.get(self.capability.value, "Request failed.")
