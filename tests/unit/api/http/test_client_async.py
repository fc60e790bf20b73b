"""Tests for AsyncApiClient."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from snapsell.core.api.http.auth import ApiKeyAuth
from snapsell.core.api.http.client import AsyncApiClient, categorize_http_error
from snapsell.core.api.http.config import HttpClientConfig
from snapsell.core.api.http.errors import (
    AuthError,
    ClientError,
    DecodeError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TransportError,
    UnexpectedStatusError,
)


def _client(handler, **config) -> AsyncApiClient:
    cfg = HttpClientConfig(base_url="https://example.test", **config)
    return AsyncApiClient(cfg, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_request_id_header_attached() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["id"] = request.headers["X-Request-Id"]
        return httpx.Response(200)

    async with _client(handler) as c:
        await c.get("/v1/ping")

    assert len(seen["id"]) == 16


@pytest.mark.asyncio
async def test_params_are_stringified() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200)

    async with _client(handler) as c:
        await c.get("/image/x", params={"seed": 7, "width": 1024})

    assert seen == {"seed": "7", "width": "1024"}


@pytest.mark.asyncio
async def test_bearer_auth_header_applied() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200)

    cfg = HttpClientConfig(base_url="https://example.test")
    async with AsyncApiClient(
        cfg, auth=ApiKeyAuth.bearer("sk_test"), transport=httpx.MockTransport(handler)
    ) as c:
        await c.get("/ping")

    assert seen["auth"] == "Bearer sk_test"


@pytest.mark.asyncio
async def test_deadline_elapsed_raises_timeout_error() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200)

    async with _client(handler, deadline_s=0.05) as c:
        with pytest.raises(TimeoutError) as exc_info:
            await c.get("/slow")

    assert exc_info.value.method == "GET"
    assert exc_info.value.url == "https://example.test/slow"


@pytest.mark.asyncio
async def test_httpx_timeout_maps_to_timeout_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    async with _client(handler) as c:
        with pytest.raises(TimeoutError):
            await c.get("/slow")


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as c:
        with pytest.raises(TransportError) as exc_info:
            await c.get("/down")

    assert isinstance(exc_info.value.cause, httpx.ConnectError)
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_type"),
    [
        (401, AuthError),
        (403, AuthError),
        (429, RateLimitError),
        (404, ClientError),
        (500, ServerError),
        (503, ServerError),
    ],
)
async def test_error_status_categorized(status: int, error_type: type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="nope", headers={"x-request-id": "abc"})

    async with _client(handler) as c:
        with pytest.raises(error_type) as exc_info:
            await c.get("/thing")

    err = exc_info.value
    assert err.status_code == status
    assert err.response_body_snippet == "nope"


@pytest.mark.asyncio
async def test_raise_for_status_false_returns_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "bad"})

    async with _client(handler) as c:
        resp = await c.post("/chat/completions", json_body={}, raise_for_status=False)

    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_absolute_url_bypasses_base_url() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200)

    async with _client(handler) as c:
        await c.get("https://other.test/a")

    assert seen["url"] == "https://other.test/a"


@pytest.mark.asyncio
async def test_get_binary_returns_image_response(png_bytes: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})

    async with _client(handler) as c:
        resp = await c.get_binary("/image/x")

    assert resp.content == png_bytes


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"error": "queue full"}),
        httpx.Response(200, content=b""),
    ],
)
async def test_get_binary_rejects_json_or_empty_body(response: httpx.Response) -> None:
    async with _client(lambda request: response) as c:
        with pytest.raises(DecodeError) as exc_info:
            await c.get_binary("/image/x")

    assert exc_info.value.status_code == 200


def test_categorize_unexpected_status() -> None:
    assert categorize_http_error(302) is UnexpectedStatusError
