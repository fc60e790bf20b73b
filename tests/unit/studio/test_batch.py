"""Tests for the batch image coordinator."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from snapsell.core.api.http.errors import ServerError
from snapsell.core.studio.batch import (
    MISSING_PROMPT_MESSAGE,
    AngleRequest,
    BatchImageCoordinator,
    BatchSettings,
)
from snapsell.core.studio.errors import ExhaustedFallbackError, FailureCause
from snapsell.core.studio.images import ImageSpool
from snapsell.core.studio.models import ANGLE_LABELS, AngleStatus
from snapsell.core.studio.orchestrator import (
    FALLBACK_STRATEGIES,
    AttemptFailure,
    GenerationRequest,
    ImageGenerationResult,
)
from snapsell.core.studio.state import StudioState

SETTINGS = BatchSettings(
    width=768,
    height=768,
    base_seed=100,
    reference_image_urls=("https://img.test/a.jpg",),
    negative_prompt="text",
)


def _exhausted() -> ExhaustedFallbackError:
    cause = ServerError(message="boom", method="GET", url="https://gen.test/image/x")
    return ExhaustedFallbackError(
        [AttemptFailure(strategy=s, model="m", cause=cause) for s in FALLBACK_STRATEGIES]
    )


class FakeOrchestrator:
    """Renders every prompt except those listed in ``fail``; records requests."""

    def __init__(self, spool: ImageSpool, png: bytes, fail: set[str] | None = None) -> None:
        self.spool = spool
        self.png = png
        self.fail = fail or set()
        self.requests: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> ImageGenerationResult:
        self.requests.append(request)
        await asyncio.sleep(0)
        if request.prompt in self.fail:
            raise _exhausted()
        image = await self.spool.materialize(self.png)
        return ImageGenerationResult(
            image=image, model_used="primary", degraded=False, warning=None, attempts=1
        )


def _angles() -> list[AngleRequest]:
    return [AngleRequest(label=label, prompt=f"{label} prompt") for label in ANGLE_LABELS]


def test_settings_seed_offset() -> None:
    request = SETTINGS.request_for("p", 3)
    assert request.seed == 103
    assert request.width == 768
    assert request.reference_image_urls == ("https://img.test/a.jpg",)


@pytest.mark.asyncio
async def test_all_angles_render(spool: ImageSpool, png_bytes: bytes) -> None:
    state = StudioState()
    cycle = state.begin_cycle()
    orchestrator = FakeOrchestrator(spool, png_bytes)

    results = await BatchImageCoordinator(orchestrator, state).generate_batch(
        cycle, _angles(), SETTINGS
    )

    assert [r.label for r in results] == list(ANGLE_LABELS)
    assert all(r.status is AngleStatus.SUCCESS for r in results)
    assert sorted(r.seed for r in orchestrator.requests) == [100, 101, 102, 103]
    assert state.live_handle_count == 4


@pytest.mark.asyncio
async def test_missing_prompt_skips_orchestrator(spool: ImageSpool, png_bytes: bytes) -> None:
    state = StudioState()
    cycle = state.begin_cycle()
    orchestrator = FakeOrchestrator(spool, png_bytes)

    angles = _angles()
    angles[2] = AngleRequest(label="Side", prompt="")
    results = await BatchImageCoordinator(orchestrator, state).generate_batch(
        cycle, angles, SETTINGS
    )

    side = results[2]
    assert side.status is AngleStatus.ERROR
    assert side.error_message == MISSING_PROMPT_MESSAGE
    assert len(orchestrator.requests) == 3
    assert {r.seed for r in orchestrator.requests} == {100, 101, 103}
    assert [r.status for r in results].count(AngleStatus.SUCCESS) == 3


@pytest.mark.asyncio
async def test_one_failure_does_not_affect_others(spool: ImageSpool, png_bytes: bytes) -> None:
    state = StudioState()
    cycle = state.begin_cycle()
    orchestrator = FakeOrchestrator(spool, png_bytes, fail={"Detail prompt"})

    results = await BatchImageCoordinator(orchestrator, state).generate_batch(
        cycle, _angles(), SETTINGS
    )

    detail = state.angle("Detail")
    assert detail.status is AngleStatus.ERROR
    assert detail.prompt == "Detail prompt"
    assert detail.error_cause is FailureCause.TRANSIENT
    assert [r.status for r in results[:3]] == [AngleStatus.SUCCESS] * 3


@pytest.mark.asyncio
async def test_unexpected_error_is_isolated(spool: ImageSpool, png_bytes: bytes) -> None:
    state = StudioState()
    cycle = state.begin_cycle()
    orchestrator = MagicMock()

    async def generate(request: GenerationRequest) -> ImageGenerationResult:
        if request.seed == 100:
            raise RuntimeError("kaboom")
        image = await spool.materialize(png_bytes)
        return ImageGenerationResult(
            image=image, model_used="kontext", degraded=True, warning="w", attempts=2
        )

    orchestrator.generate = generate

    results = await BatchImageCoordinator(orchestrator, state).generate_batch(
        cycle, _angles(), SETTINGS
    )

    assert results[0].status is AngleStatus.ERROR
    assert results[0].error_message == "kaboom"
    assert results[1].degraded is True
    assert results[1].badge == "Studio Refined"


@pytest.mark.asyncio
async def test_duplicate_labels_rejected(spool: ImageSpool, png_bytes: bytes) -> None:
    state = StudioState()
    cycle = state.begin_cycle()
    coordinator = BatchImageCoordinator(FakeOrchestrator(spool, png_bytes), state)

    with pytest.raises(ValueError, match="Duplicate"):
        await coordinator.generate_batch(
            cycle, [AngleRequest("Front", "a"), AngleRequest("Front", "b")], SETTINGS
        )


@pytest.mark.asyncio
async def test_results_from_superseded_cycle_are_released(
    spool: ImageSpool, png_bytes: bytes
) -> None:
    state = StudioState()
    cycle = state.begin_cycle()

    class SlowOrchestrator(FakeOrchestrator):
        async def generate(self, request: GenerationRequest) -> ImageGenerationResult:
            result = await super().generate(request)
            if request.seed == 100:
                state.begin_cycle()
            return result

    results = await BatchImageCoordinator(
        SlowOrchestrator(spool, png_bytes), state
    ).generate_batch(cycle, _angles(), SETTINGS)

    assert all(r.image.released for r in results if r.image is not None)
    assert state.live_handle_count == 0
