"""Structured-generation client.

Calls the service's OpenAI-compatible chat-completions endpoint with a
strict JSON-schema response format and parses the single message content
into a Pydantic model.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any, TypeVar

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from snapsell.core.agents.providers.errors import (
    EmptyResponseError,
    GenerationError,
    MalformedResponseError,
)
from snapsell.core.agents.schema_utils import build_response_format
from snapsell.core.api.http.config import DEFAULT_TIMEOUT_S
from snapsell.core.api.http.errors import TimeoutError, TransportError
from snapsell.core.api.http.utils import parse_error_details

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Greedy: first "{" through last "}". Known to mis-handle several
# independent objects in one reply.
_JSON_SPAN = re.compile(r"\{[\s\S]*\}")

IMAGE_DETAIL = "high"


def extract_json_payload(content: str | None) -> Any:
    """Parse the JSON payload out of a model reply.

    Args:
        content: Raw message content

    Returns:
        Decoded JSON value

    Raises:
        EmptyResponseError: Content is empty after trimming (nothing is parsed)
        MalformedResponseError: The selected text is not valid JSON, or
            exceeds the decoder limits (integer digits, nesting depth)
    """
    text = (content or "").strip()
    if not text:
        raise EmptyResponseError("Empty response from generation service")

    match = _JSON_SPAN.search(text)
    candidate = match.group(0) if match else text
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError) as e:
        raise MalformedResponseError(f"Failed to parse JSON response: {e}") from e


def build_user_content(
    user_text: str, reference_image_urls: Sequence[str]
) -> list[dict[str, Any]]:
    """Build user message parts: the text, then one image part per reference URL."""
    parts: list[dict[str, Any]] = [{"type": "text", "text": user_text}]
    for url in reference_image_urls:
        if url and url.strip():
            parts.append(
                {"type": "image_url", "image_url": {"url": url.strip(), "detail": IMAGE_DETAIL}}
            )
    return parts


class StructuredGenerationClient:
    """Async client returning schema-validated Pydantic models.

    Responsibilities:
    - Build the chat request (system message, text + image user message)
    - Attach a strict json_schema response format derived from the model
    - Map transport, timeout and status failures onto the shared error taxonomy
    - Parse and validate the reply

    No retries: ``max_retries=0`` is passed to the SDK client.

    Args:
        api_key: Service credential (sent as a bearer token)
        base_url: OpenAI-compatible base URL (e.g. "https://gen.pollinations.ai/v1")
        timeout: Fixed per-request timeout in seconds
        temperature: Sampling temperature sent with every request
        client: Pre-built AsyncOpenAI client (overrides api_key/base_url/timeout)
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        temperature: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self.temperature = temperature

    @property
    def endpoint(self) -> str:
        """Chat-completions URL used for error reporting."""
        return f"{str(self._client.base_url).rstrip('/')}/chat/completions"

    def build_request(
        self,
        *,
        model: str,
        system_prompt: str,
        user_text: str,
        reference_image_urls: Sequence[str],
        response_model: type[BaseModel],
    ) -> dict[str, Any]:
        """Build chat-completions request parameters."""
        params: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": build_user_content(user_text, reference_image_urls)},
            ],
            "response_format": build_response_format(response_model),
        }
        if self.temperature is not None:
            params["temperature"] = self.temperature
        return params

    async def generate_structured(
        self,
        *,
        model: str,
        system_prompt: str,
        user_text: str,
        reference_image_urls: Sequence[str],
        response_model: type[T],
    ) -> T:
        """Generate and validate a structured payload.

        Args:
            model: Text model identifier
            system_prompt: System message
            user_text: User message text part
            reference_image_urls: Reference photo URLs (empty entries skipped)
            response_model: Pydantic model the reply must satisfy exactly

        Returns:
            Validated response_model instance

        Raises:
            TimeoutError: Request exceeded the fixed timeout
            TransportError: Network-level failure
            GenerationError: Non-success HTTP status
            EmptyResponseError: Empty reply content
            MalformedResponseError: Unparseable JSON or schema mismatch
        """
        params = self.build_request(
            model=model,
            system_prompt=system_prompt,
            user_text=user_text,
            reference_image_urls=reference_image_urls,
            response_model=response_model,
        )

        try:
            response = await self._client.chat.completions.create(**params)
        except APITimeoutError as e:
            raise TimeoutError(
                message="Structured generation timed out", method="POST", url=self.endpoint, cause=e
            ) from e
        except APIConnectionError as e:
            raise TransportError(
                message="Network error during structured generation",
                method="POST",
                url=self.endpoint,
                cause=e,
            ) from e
        except APIStatusError as e:
            logger.error(f"Structured generation failed with status {e.status_code}")
            raise GenerationError(e.status_code, _status_details(e)) from e

        content = response.choices[0].message.content if response.choices else None
        payload = extract_json_payload(content)

        try:
            result = response_model.model_validate(payload)
        except SchemaValidationError as e:
            raise MalformedResponseError(
                f"Response does not match {response_model.__name__} schema: {e}"
            ) from e

        logger.debug(
            f"Structured generation succeeded (model={model}, schema={response_model.__name__})"
        )
        return result

    async def aclose(self) -> None:
        await self._client.close()


def _status_details(error: APIStatusError) -> Any:
    try:
        return parse_error_details(error.response.text)
    except httpx.ResponseNotRead:
        return error.body
