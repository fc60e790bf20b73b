"""Tests for the image fallback orchestrator."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from snapsell.core.api.http.auth import ApiKeyAuth
from snapsell.core.api.http.client import AsyncApiClient
from snapsell.core.api.http.config import HttpClientConfig
from snapsell.core.api.http.errors import DecodeError, ServerError, TimeoutError
from snapsell.core.studio.errors import ExhaustedFallbackError
from snapsell.core.studio.images import ImageSpool
from snapsell.core.studio.orchestrator import (
    FALLBACK_MODEL_WARNING,
    FALLBACK_STRATEGIES,
    REFERENCE_DROPPED_WARNING,
    AttemptFailure,
    GenerationRequest,
    ImageFallbackOrchestrator,
    ModelRole,
    build_image_params,
    build_image_path,
)

REFS = ("https://img.test/a.jpg", "https://img.test/b.jpg")


def _request(**overrides) -> GenerationRequest:
    fields = dict(
        prompt="front view of a bag",
        width=1024,
        height=1024,
        seed=42,
        safe=True,
        reference_image_urls=REFS,
        negative_prompt="text",
    )
    fields.update(overrides)
    return GenerationRequest(**fields)


class ImageService:
    """Scripted image endpoint: outcome per attempt number, recording each request."""

    def __init__(self, outcomes: list[Callable[[httpx.Request], httpx.Response]]) -> None:
        self.outcomes = outcomes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.outcomes[len(self.requests) - 1](request)


def ok(png: bytes) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(200, content=png, headers={"content-type": "image/png"})


def status(code: int) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(code, text="error")


def _orchestrator(service: ImageService, spool: ImageSpool) -> ImageFallbackOrchestrator:
    http = AsyncApiClient(
        HttpClientConfig(base_url="https://gen.test"),
        auth=ApiKeyAuth.bearer("sk_test"),
        transport=httpx.MockTransport(service),
    )
    return ImageFallbackOrchestrator(http, spool, primary_model="primary", secondary_model="backup")


def test_strategy_order_is_fixed() -> None:
    assert [(s.model_role, s.use_reference_images) for s in FALLBACK_STRATEGIES] == [
        (ModelRole.PRIMARY, True),
        (ModelRole.SECONDARY, True),
        (ModelRole.PRIMARY, False),
    ]
    assert [s.degraded for s in FALLBACK_STRATEGIES] == [False, True, True]


def test_build_image_params_with_references() -> None:
    params = build_image_params(_request(), model="primary", use_reference_images=True)
    assert params == {
        "model": "primary",
        "width": "1024",
        "height": "1024",
        "seed": "42",
        "safe": "true",
        "negative_prompt": "text",
        "image": "https://img.test/a.jpg|https://img.test/b.jpg",
    }


def test_build_image_params_without_references() -> None:
    params = build_image_params(
        _request(safe=False, negative_prompt=None), model="primary", use_reference_images=False
    )
    assert "image" not in params
    assert "negative_prompt" not in params
    assert params["safe"] == "false"


def test_build_image_params_empty_reference_list_omits_image() -> None:
    params = build_image_params(
        _request(reference_image_urls=()), model="primary", use_reference_images=True
    )
    assert "image" not in params


def test_build_image_path_encodes_prompt() -> None:
    assert build_image_path("a bag / strap?") == "/image/a%20bag%20%2F%20strap%3F"


def test_request_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        _request(width=0)


@pytest.mark.asyncio
async def test_first_attempt_success(spool: ImageSpool, png_bytes: bytes) -> None:
    service = ImageService([ok(png_bytes)])

    result = await _orchestrator(service, spool).generate(_request())

    assert result.degraded is False
    assert result.warning is None
    assert result.model_used == "primary"
    assert result.attempts == 1
    assert len(service.requests) == 1
    request = service.requests[0]
    assert request.url.path == "/image/front view of a bag"
    assert request.url.params["image"] == "https://img.test/a.jpg|https://img.test/b.jpg"
    assert request.headers["Authorization"] == "Bearer sk_test"


@pytest.mark.asyncio
async def test_second_attempt_uses_secondary_model(spool: ImageSpool, png_bytes: bytes) -> None:
    service = ImageService([status(500), ok(png_bytes)])

    result = await _orchestrator(service, spool).generate(_request())

    assert result.degraded is True
    assert result.model_used == "backup"
    assert result.warning == FALLBACK_MODEL_WARNING
    assert result.attempts == 2
    assert service.requests[1].url.params["model"] == "backup"
    assert "image" in service.requests[1].url.params


@pytest.mark.asyncio
async def test_third_attempt_drops_references(spool: ImageSpool, png_bytes: bytes) -> None:
    service = ImageService([status(500), status(400), ok(png_bytes)])

    result = await _orchestrator(service, spool).generate(_request())

    assert result.degraded is True
    assert result.model_used == "primary"
    assert result.warning == REFERENCE_DROPPED_WARNING
    assert result.attempts == 3
    assert "image" not in service.requests[2].url.params


@pytest.mark.asyncio
async def test_seed_and_prompt_unchanged_across_attempts(
    spool: ImageSpool, png_bytes: bytes
) -> None:
    service = ImageService([status(503), status(503), ok(png_bytes)])

    await _orchestrator(service, spool).generate(_request(seed=1234))

    assert {r.url.params["seed"] for r in service.requests} == {"1234"}
    assert {r.url.path for r in service.requests} == {"/image/front view of a bag"}
    assert {r.url.params["width"] for r in service.requests} == {"1024"}


@pytest.mark.asyncio
async def test_all_attempts_fail(spool: ImageSpool) -> None:
    service = ImageService([status(500), status(502), status(503)])

    with pytest.raises(ExhaustedFallbackError) as exc_info:
        await _orchestrator(service, spool).generate(_request())

    failures = exc_info.value.failures
    assert len(failures) == 3
    assert [f.model for f in failures] == ["primary", "backup", "primary"]
    assert all(isinstance(f.cause, ServerError) for f in failures)
    assert list(spool.directory.iterdir()) == []


@pytest.mark.asyncio
async def test_json_success_body_counts_as_failure(spool: ImageSpool, png_bytes: bytes) -> None:
    service = ImageService(
        [lambda request: httpx.Response(200, json={"error": "queue full"}), ok(png_bytes)]
    )

    result = await _orchestrator(service, spool).generate(_request())

    assert result.attempts == 2
    assert result.model_used == "backup"


@pytest.mark.asyncio
async def test_single_attempt_reports_decode_failure(spool: ImageSpool) -> None:
    service = ImageService([lambda request: httpx.Response(200, json={"error": "queue full"})])

    outcome = await _orchestrator(service, spool).attempt(FALLBACK_STRATEGIES[0], _request())

    assert isinstance(outcome, AttemptFailure)
    assert isinstance(outcome.cause, DecodeError)
    assert outcome.model == "primary"


@pytest.mark.asyncio
async def test_undecodable_body_falls_back(spool: ImageSpool, png_bytes: bytes) -> None:
    service = ImageService(
        [
            lambda request: httpx.Response(
                200, content=b"not really", headers={"content-type": "image/jpeg"}
            ),
            ok(png_bytes),
        ]
    )

    result = await _orchestrator(service, spool).generate(_request())

    assert result.attempts == 2
    assert result.model_used == "backup"


@pytest.mark.asyncio
async def test_timeout_falls_back(spool: ImageSpool, png_bytes: bytes) -> None:
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    service = ImageService([timeout, timeout, ok(png_bytes)])

    result = await _orchestrator(service, spool).generate(_request())

    assert result.attempts == 3


@pytest.mark.asyncio
async def test_failure_causes_are_recorded(spool: ImageSpool) -> None:
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    service = ImageService([timeout, status(500), status(500)])

    with pytest.raises(ExhaustedFallbackError) as exc_info:
        await _orchestrator(service, spool).generate(_request())

    assert isinstance(exc_info.value.failures[0].cause, TimeoutError)
