"""Utility functions for HTTP client operations."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin


def join_url(base_url: str, path: str) -> str:
    """Join base URL with path in a predictable way.

    Absolute URLs in ``path`` are returned unchanged.

    Args:
        base_url: Base URL (e.g. "https://gen.pollinations.ai")
        path: Request path (e.g. "/v1/models" or "v1/models")

    Returns:
        Joined URL (e.g. "https://gen.pollinations.ai/v1/models")
    """
    if path.startswith(("http://", "https://")):
        return path
    base = base_url if base_url.endswith("/") else base_url + "/"
    return urljoin(base, path.lstrip("/"))


def safe_snippet(content: bytes, limit: int) -> str:
    """Extract safe text snippet from response content for logging.

    Args:
        content: Response body bytes
        limit: Maximum number of bytes to include

    Returns:
        Truncated, decoded text snippet
    """
    if not content:
        return ""
    return content[:limit].decode("utf-8", errors="replace")


def get_request_id(headers: Mapping[str, str]) -> str | None:
    """Extract request ID from common tracing headers.

    Checks for: x-request-id, x-correlation-id, request-id, trace-id (case-insensitive).
    """
    for key in ("x-request-id", "x-correlation-id", "request-id", "trace-id"):
        for hk, hv in headers.items():
            if hk.lower() == key:
                return hv
    return None


def is_json_content_type(headers: Mapping[str, str]) -> bool:
    """Check if a content-type header indicates JSON."""
    ctype = ""
    for hk, hv in headers.items():
        if hk.lower() == "content-type":
            ctype = hv.lower()
            break
    return "application/json" in ctype or "+json" in ctype


def parse_error_details(text: str) -> Any:
    """Parse an error body as JSON, falling back to the raw text.

    Args:
        text: Raw response body

    Returns:
        Decoded JSON value when the body parses, else the text itself
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text
