"""Structured-generation provider for agents."""

from snapsell.core.agents.providers.errors import (
    EmptyResponseError,
    GenerationError,
    MalformedResponseError,
    ProviderError,
)
from snapsell.core.agents.providers.structured import (
    StructuredGenerationClient,
    extract_json_payload,
)

__all__ = [
    "EmptyResponseError",
    "GenerationError",
    "MalformedResponseError",
    "ProviderError",
    "StructuredGenerationClient",
    "extract_json_payload",
]
