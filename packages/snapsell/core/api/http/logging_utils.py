"""Debug logging for HTTP exchanges.

One line per request. Credentials are masked and long prompt paths are
shortened so a render request stays readable in the log.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

logger = logging.getLogger("snapsell.core.api.http")

REDACTED = "***REDACTED***"
MAX_LOGGED_URL = 160


def redact_headers(headers: Mapping[str, str], redact: tuple[str, ...]) -> dict[str, str]:
    """Copy of ``headers`` with the names in ``redact`` (case-insensitive) masked."""
    masked = {name.lower() for name in redact}
    return {k: REDACTED if k.lower() in masked else v for k, v in headers.items()}


def shorten_url(url: str, limit: int = MAX_LOGGED_URL) -> str:
    if len(url) <= limit:
        return url
    return f"{url[: limit - 3]}..."


def log_exchange(
    response: httpx.Response, request_id: str, elapsed_s: float, *, redact: tuple[str, ...]
) -> None:
    request = response.request
    logger.debug(
        f"{request.method} {shorten_url(str(request.url))} -> {response.status_code} "
        f"({int(elapsed_s * 1000)}ms)",
        extra={
            "request_id": request_id,
            "status_code": response.status_code,
            "elapsed_ms": int(elapsed_s * 1000),
            "request_headers": redact_headers(request.headers, redact),
            "content_type": response.headers.get("content-type", ""),
            "content_length": len(response.content),
        },
    )


def log_failure(method: str, url: str, request_id: str, reason: str, elapsed_s: float) -> None:
    """Record a request that produced no response."""
    logger.debug(
        f"{method} {shorten_url(url)} failed: {reason} ({int(elapsed_s * 1000)}ms)",
        extra={"request_id": request_id, "elapsed_ms": int(elapsed_s * 1000)},
    )
