"""Concurrent rendering of the four angles."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from snapsell.core.studio.errors import (
    ExhaustedFallbackError,
    FailureCause,
    classify_failure,
)
from snapsell.core.studio.models import AngleResult, AngleStatus
from snapsell.core.studio.orchestrator import GenerationRequest, ImageFallbackOrchestrator
from snapsell.core.studio.state import StudioState

logger = logging.getLogger(__name__)

MISSING_PROMPT_MESSAGE = "missing prompt for this angle"


@dataclass(frozen=True)
class AngleRequest:
    label: str
    prompt: str | None


@dataclass(frozen=True)
class BatchSettings:
    """Render settings shared by every angle of a batch."""

    width: int
    height: int
    base_seed: int
    safe: bool = True
    reference_image_urls: tuple[str, ...] = ()
    negative_prompt: str | None = None

    def request_for(self, prompt: str, index: int) -> GenerationRequest:
        return GenerationRequest(
            prompt=prompt,
            width=self.width,
            height=self.height,
            seed=self.base_seed + index,
            safe=self.safe,
            reference_image_urls=tuple(self.reference_image_urls),
            negative_prompt=self.negative_prompt or None,
        )


class BatchImageCoordinator:
    """Fans a batch of angles out to the orchestrator and joins them.

    Each angle is isolated: its failure is recorded on that angle and never
    cancels the others. Results reach ``state`` as each angle resolves.
    """

    def __init__(self, orchestrator: ImageFallbackOrchestrator, state: StudioState) -> None:
        self._orchestrator = orchestrator
        self._state = state
        self._in_flight: set[tuple[int, str]] = set()

    async def generate_batch(
        self, cycle_id: int, angles: Sequence[AngleRequest], settings: BatchSettings
    ) -> list[AngleResult]:
        """Render every angle and wait for all of them.

        Args:
            cycle_id: Cycle the results belong to
            angles: Angles in order; the index offsets the seed
            settings: Shared render settings

        Returns:
            One AngleResult per angle, in input order. Results of a cycle
            that was superseded meanwhile are returned but were not applied
            (their images are already released).

        Raises:
            ValueError: Duplicate label in the batch, or an angle of this
                cycle is already rendering
        """
        labels = [angle.label for angle in angles]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Duplicate angle labels in batch: {labels}")
        busy = [label for label in labels if (cycle_id, label) in self._in_flight]
        if busy:
            raise ValueError(f"Angles already rendering in cycle {cycle_id}: {busy}")

        results: list[AngleResult | None] = [None] * len(angles)
        tasks = []
        for index, angle in enumerate(angles):
            prompt = (angle.prompt or "").strip()
            if not prompt:
                result = AngleResult(
                    label=angle.label,
                    status=AngleStatus.ERROR,
                    error_message=MISSING_PROMPT_MESSAGE,
                    error_cause=FailureCause.MALFORMED_RESPONSE,
                )
                self._state.apply_angle_result(cycle_id, result)
                results[index] = result
                continue
            tasks.append(self._render_angle(cycle_id, index, angle.label, prompt, settings))

        for index, result in await asyncio.gather(*tasks):
            results[index] = result

        return [r for r in results if r is not None]

    async def _render_angle(
        self, cycle_id: int, index: int, label: str, prompt: str, settings: BatchSettings
    ) -> tuple[int, AngleResult]:
        key = (cycle_id, label)
        self._in_flight.add(key)
        try:
            generated = await self._orchestrator.generate(settings.request_for(prompt, index))
        except ExhaustedFallbackError as e:
            logger.error("All image attempts failed for %s: %s", label, e)
            result = _error_result(label, prompt, e)
        except Exception as e:
            logger.error("Rendering %s failed: %s", label, e)
            result = _error_result(label, prompt, e)
        else:
            result = AngleResult(
                label=label,
                status=AngleStatus.SUCCESS,
                image=generated.image,
                prompt=prompt,
                model_used=generated.model_used,
                degraded=generated.degraded,
                warning=generated.warning,
            )
        finally:
            self._in_flight.discard(key)

        self._state.apply_angle_result(cycle_id, result)
        return index, result


def _error_result(label: str, prompt: str, error: Exception) -> AngleResult:
    return AngleResult(
        label=label,
        status=AngleStatus.ERROR,
        prompt=prompt,
        error_message=str(error) or "Failed to render studio view",
        error_cause=classify_failure(error),
    )
