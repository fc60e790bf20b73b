"""Structured-generation error types."""

from __future__ import annotations

from typing import Any


class ProviderError(Exception):
    """Base class for structured-generation failures."""

    pass


class GenerationError(ProviderError):
    """The service answered with a non-success status.

    Attributes:
        status: HTTP status code
        details: Parsed error body when it is JSON, otherwise the raw text
    """

    def __init__(self, status: int, details: Any) -> None:
        self.status = status
        self.details = details
        super().__init__(f"Generation request failed with status {status}: {details}")


class MalformedResponseError(ProviderError):
    """Response content could not be parsed or did not match the schema."""

    pass


class EmptyResponseError(ProviderError):
    """Response content was empty after trimming."""

    pass
