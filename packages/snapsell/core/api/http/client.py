"""Async HTTP client wrapper built on HTTPX.

Every call to the generation service, the image host and the key probe goes
through ``AsyncApiClient``. Each request is bounded by one cancelling
deadline, and failures surface as ``ApiError`` subclasses. There are no
retries at this layer; the image fallback ladder decides when to try again.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Mapping
from typing import Any

import httpx

from snapsell.core.api.http.config import HttpClientConfig
from snapsell.core.api.http.errors import (
    ApiError,
    AuthError,
    ClientError,
    DecodeError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TransportError,
    UnexpectedStatusError,
)
from snapsell.core.api.http.logging_utils import log_exchange, log_failure
from snapsell.core.api.http.utils import (
    get_request_id,
    is_json_content_type,
    join_url,
    safe_snippet,
)

REQUEST_ID_HEADER = "X-Request-Id"


def categorize_http_error(status_code: int) -> type[ApiError]:
    """Map an error status to its ApiError subclass."""
    if status_code in (401, 403):
        return AuthError
    if status_code == 429:
        return RateLimitError
    if 400 <= status_code < 500:
        return ClientError
    if 500 <= status_code < 600:
        return ServerError
    return UnexpectedStatusError


def build_api_error(
    *,
    exc_type: type[ApiError],
    message: str,
    method: str,
    url: str,
    status_code: int | None = None,
    response: httpx.Response | None = None,
    request_id: str | None = None,
    body_snippet_limit: int = 4096,
    cause: BaseException | None = None,
) -> ApiError:
    """Build an ApiError carrying whatever response context is available.

    When ``response`` is given its headers, a body snippet and any tracing
    id it carries are attached.
    """
    headers: dict[str, str] | None = None
    snippet: str | None = None
    if response is not None:
        headers = dict(response.headers)
        snippet = safe_snippet(response.content or b"", body_snippet_limit)
        request_id = request_id or get_request_id(response.headers)

    return exc_type(
        message=message,
        method=method,
        url=url,
        status_code=status_code,
        request_id=request_id,
        response_headers=headers,
        response_body_snippet=snippet,
        cause=cause,
    )


class AsyncApiClient:
    """Deadline-bounded async client for one base URL.

    Args:
        config: Client configuration
        auth: Optional header auth (e.g. ``ApiKeyAuth.bearer(key)``)
        transport: Optional custom transport (``httpx.MockTransport`` in tests)

    Example:
        >>> config = HttpClientConfig(base_url="https://gen.pollinations.ai")
        >>> async with AsyncApiClient(config, auth=ApiKeyAuth.bearer(key)) as client:
        ...     resp = await client.get_binary("/image/a%20red%20chair", params={"seed": 7})
    """

    def __init__(
        self,
        config: HttpClientConfig,
        *,
        auth: httpx.Auth | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.auth = auth
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"User-Agent": config.user_agent, **config.headers},
            timeout=config.timeout,
            limits=config.limits,
            follow_redirects=config.follow_redirects,
            auth=auth,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AsyncApiClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
        files: Any = None,
        raise_for_status: bool = True,
    ) -> httpx.Response:
        """Send one request bounded by ``config.deadline_s``.

        Args:
            method: HTTP method
            path: Path relative to base_url, or an absolute URL
            params: Query parameters (values are stringified)
            headers: Extra request headers
            json_body: JSON body
            files: Multipart files
            raise_for_status: Raise a categorized ApiError on status >= 400.
                When False the response is returned whatever its status.

        Raises:
            TimeoutError: Deadline elapsed before a response arrived
            TransportError: DNS, connection or protocol failure
            ApiError: Status >= 400 (subclass by category) if raise_for_status
        """
        method_u = method.upper()
        url = join_url(str(self._client.base_url), path)
        request_headers = dict(headers or {})
        req_id = request_headers.setdefault(REQUEST_ID_HEADER, uuid.uuid4().hex[:16])
        query = {k: str(v) for k, v in (params or {}).items()}

        start = time.perf_counter()
        try:
            resp = await asyncio.wait_for(
                self._client.request(
                    method_u,
                    url,
                    params=query,
                    headers=request_headers,
                    json=json_body,
                    files=files,
                ),
                timeout=self.config.deadline_s,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            log_failure(method_u, url, req_id, "timeout", time.perf_counter() - start)
            raise build_api_error(
                exc_type=TimeoutError,
                message=f"Request timed out after {self.config.deadline_s:g}s",
                method=method_u,
                url=url,
                request_id=req_id,
                cause=e,
            ) from e
        except httpx.RequestError as e:
            log_failure(method_u, url, req_id, type(e).__name__, time.perf_counter() - start)
            raise build_api_error(
                exc_type=TransportError,
                message=f"Network error while sending request: {e.__class__.__name__}",
                method=method_u,
                url=url,
                request_id=req_id,
                cause=e,
            ) from e

        log_exchange(
            resp,
            req_id,
            time.perf_counter() - start,
            redact=self.config.redact_headers,
        )

        if raise_for_status and resp.status_code >= 400:
            raise build_api_error(
                exc_type=categorize_http_error(resp.status_code),
                message="HTTP error response",
                method=method_u,
                url=url,
                status_code=resp.status_code,
                response=resp,
                request_id=req_id,
                body_snippet_limit=self.config.max_response_body_for_error,
            )
        return resp

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def get_binary(
        self, path: str, *, params: Mapping[str, Any] | None = None
    ) -> httpx.Response:
        """GET a binary payload such as a rendered image.

        The image endpoint reports some failures (queue full, moderation)
        as a 200 with a JSON body, so a JSON or empty body is an error here.

        Raises:
            DecodeError: Body is empty or JSON
            ApiError: As for ``request``
        """
        resp = await self.get(path, params=params)
        if resp.content and not is_json_content_type(resp.headers):
            return resp
        raise build_api_error(
            exc_type=DecodeError,
            message="Expected binary content, got "
            + ("an empty body" if not resp.content else "a JSON body"),
            method="GET",
            url=str(resp.request.url),
            status_code=resp.status_code,
            response=resp,
            body_snippet_limit=self.config.max_response_body_for_error,
        )
