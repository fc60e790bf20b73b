"""Studio error types and user-facing failure classification.

Failures are grouped into causes so callers can show different guidance for
a rejected credential, a busy service and an unusable reference photo.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING

from snapsell.core.agents.providers.errors import (
    EmptyResponseError,
    GenerationError,
    MalformedResponseError,
)
from snapsell.core.api.http.errors import (
    AuthError,
    ClientError,
    DecodeError,
    RateLimitError,
)

if TYPE_CHECKING:
    from snapsell.core.studio.orchestrator import AttemptFailure


class StudioError(Exception):
    """Base class for studio errors."""

    pass


class ValidationError(StudioError):
    """User input rejected before any network call (no reference images, bad key format)."""

    pass


class ExhaustedFallbackError(StudioError):
    """Every image strategy failed for one request.

    Attributes:
        failures: One AttemptFailure per strategy, in attempt order
    """

    def __init__(self, failures: Sequence[AttemptFailure]) -> None:
        self.failures = tuple(failures)
        super().__init__(
            f"Failed to generate image after {len(self.failures)} attempts: "
            + "; ".join(f"{f.model}: {f.cause}" for f in self.failures)
        )


class FailureCause(str, Enum):
    """Why an operation failed, from the user's point of view."""

    BAD_CREDENTIAL = "bad_credential"
    TRANSIENT = "transient"
    REFERENCE_UNUSABLE = "reference_unusable"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_INPUT = "invalid_input"


_GUIDANCE: dict[FailureCause, str] = {
    FailureCause.BAD_CREDENTIAL: (
        "The API key was rejected. Log in again with a valid pk_ or sk_ key."
    ),
    FailureCause.TRANSIENT: (
        "The generation service is busy or unreachable. Try again in a moment."
    ),
    FailureCause.REFERENCE_UNUSABLE: (
        "The reference photo could not be used. Use a direct public image link "
        "(ending in .jpg/.png) or upload the photo instead."
    ),
    FailureCause.MALFORMED_RESPONSE: (
        "The service returned a response that could not be read. Try again."
    ),
    FailureCause.INVALID_INPUT: "Check the input and try again.",
}


def classify_failure(error: BaseException) -> FailureCause:
    """Map an exception onto a user-facing failure cause."""
    if isinstance(error, ValidationError):
        return FailureCause.INVALID_INPUT
    if isinstance(error, ExhaustedFallbackError):
        return _classify_exhausted(error)
    if isinstance(error, AuthError):
        return FailureCause.BAD_CREDENTIAL
    if isinstance(error, GenerationError):
        if error.status in (401, 403):
            return FailureCause.BAD_CREDENTIAL
        if 400 <= error.status < 500 and error.status != 429:
            return FailureCause.REFERENCE_UNUSABLE
        return FailureCause.TRANSIENT
    if isinstance(error, (MalformedResponseError, EmptyResponseError)):
        return FailureCause.MALFORMED_RESPONSE
    return FailureCause.TRANSIENT


def _classify_exhausted(error: ExhaustedFallbackError) -> FailureCause:
    causes = [failure.cause for failure in error.failures]
    if any(isinstance(cause, AuthError) for cause in causes):
        return FailureCause.BAD_CREDENTIAL

    reference_causes = [
        failure.cause for failure in error.failures if failure.strategy.use_reference_images
    ]
    if reference_causes and all(
        isinstance(cause, (ClientError, DecodeError)) and not isinstance(cause, RateLimitError)
        for cause in reference_causes
    ):
        return FailureCause.REFERENCE_UNUSABLE
    return FailureCause.TRANSIENT


def guidance_for(cause: FailureCause) -> str:
    """User guidance text for a failure cause."""
    return _GUIDANCE[cause]


def describe_failure(error: BaseException) -> str:
    """Render a failure as a user-facing message with cause-specific guidance."""
    cause = classify_failure(error)
    if cause is FailureCause.INVALID_INPUT:
        return str(error)
    return f"{guidance_for(cause)} ({error})"
