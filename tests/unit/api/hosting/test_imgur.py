"""Tests for the anonymous image host client."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from snapsell.core.api.hosting.imgur import ImageHostError, ImgurClient, to_https
from snapsell.core.api.http.auth import ApiKeyAuth
from snapsell.core.api.http.client import AsyncApiClient
from snapsell.core.api.http.config import HttpClientConfig


def _imgur(handler) -> ImgurClient:
    http = AsyncApiClient(
        HttpClientConfig(base_url="https://api.imgur.test"),
        auth=ApiKeyAuth(header_name="Authorization", api_key="cid", prefix="Client-ID"),
        transport=httpx.MockTransport(handler),
    )
    return ImgurClient(http_client=http)


@pytest.fixture
def photo(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "mug.png"
    path.write_bytes(png_bytes)
    return path


@pytest.mark.asyncio
async def test_upload_returns_https_link(photo: Path) -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.read()
        return httpx.Response(
            200, json={"success": True, "data": {"link": "http://i.imgur.test/abc.png"}}
        )

    client = _imgur(handler)
    link = await client.upload(photo)
    await client.http_client.aclose()

    assert link == "https://i.imgur.test/abc.png"
    assert seen["path"] == "/3/image"
    assert seen["auth"] == "Client-ID cid"
    assert b'name="image"' in seen["body"]


@pytest.mark.asyncio
async def test_upload_failure_carries_host_message(photo: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"success": False, "data": {"error": "File type invalid"}}
        )

    client = _imgur(handler)
    with pytest.raises(ImageHostError, match="File type invalid"):
        await client.upload(photo)


@pytest.mark.asyncio
async def test_upload_network_failure(photo: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _imgur(handler)
    with pytest.raises(ImageHostError, match="unreachable"):
        await client.upload(photo)


@pytest.mark.asyncio
async def test_upload_missing_file(tmp_path: Path) -> None:
    client = _imgur(lambda request: httpx.Response(200))
    with pytest.raises(FileNotFoundError):
        await client.upload(tmp_path / "missing.jpg")


def test_to_https() -> None:
    assert to_https("http://a.test/x.png") == "https://a.test/x.png"
    assert to_https("https://a.test/x.png") == "https://a.test/x.png"
