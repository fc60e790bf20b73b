"""Listing flow: listing copy, angle prompts, then the four renders.

The two structured-generation steps run in sequence (prompts depend on the
listing's style hint); the renders then fan out concurrently. A failure in
either structured step ends the cycle: its pending angles are marked failed
and the error is raised once. Render failures stay on their own angle.
"""

from __future__ import annotations

import logging
from typing import Any

from snapsell.core.agents.prompts import PromptPackLoader
from snapsell.core.agents.providers.structured import StructuredGenerationClient
from snapsell.core.studio.batch import AngleRequest, BatchImageCoordinator, BatchSettings
from snapsell.core.studio.errors import ValidationError, classify_failure, describe_failure
from snapsell.core.studio.models import (
    AnglePromptPack,
    ListingIntelligence,
    ListingPack,
    StudioConfig,
)
from snapsell.core.studio.orchestrator import ImageFallbackOrchestrator
from snapsell.core.studio.state import StudioState
from snapsell.core.utils.logging import get_logger

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "openai"

DEFAULT_PHOTO_STYLE = "minimal premium product photography"

STYLE_SUFFIX = (
    "clean studio lighting, realistic product photography, sharp focus, accurate colors, "
    "no extra objects, no text overlay, no watermark, no logo stamp, "
    "perfectly centered square composition."
)


def build_style(photo_style_prompt: str | None) -> str:
    """Style line for angle prompts, based on the listing's style hint."""
    hint = (photo_style_prompt or "").strip().rstrip(".") or DEFAULT_PHOTO_STYLE
    return f"{hint}. {STYLE_SUFFIX}"


def listing_variables(config: StudioConfig) -> dict[str, Any]:
    return {
        "item_name": config.item_name,
        "brand": config.brand,
        "condition": config.condition.value,
        "category_hint": config.category_hint,
        "platform": config.platform.value,
        "background_style": config.background_style.value,
        "reference_count": len(config.reference_image_urls),
    }


def angle_prompt_variables(config: StudioConfig, listing: ListingIntelligence) -> dict[str, Any]:
    return {
        "item_name": config.item_name,
        "brand": config.brand,
        "condition": config.condition.value,
        "background_style": config.background_style.value,
        "style": build_style(listing.photo_style_prompt),
    }


class ListingStudio:
    """Runs listing cycles against one shared StudioState.

    Args:
        structured_client: Client for listing and prompt generation
        orchestrator: Image fallback orchestrator
        text_model: Model used for both structured steps
        state: Shared state (a fresh one when omitted)
        prompt_loader: Prompt pack loader
    """

    def __init__(
        self,
        *,
        structured_client: StructuredGenerationClient,
        orchestrator: ImageFallbackOrchestrator,
        text_model: str = DEFAULT_TEXT_MODEL,
        state: StudioState | None = None,
        prompt_loader: PromptPackLoader | None = None,
    ) -> None:
        self._structured = structured_client
        self.text_model = text_model
        self.state = state or StudioState()
        self._prompts = prompt_loader or PromptPackLoader()
        self._coordinator = BatchImageCoordinator(orchestrator, self.state)

    async def generate_listing(self, config: StudioConfig) -> ListingIntelligence:
        rendered = self._prompts.load_and_render("listing", listing_variables(config))
        return await self._structured.generate_structured(
            model=self.text_model,
            system_prompt=rendered["system"],
            user_text=rendered["user"],
            reference_image_urls=config.reference_image_urls,
            response_model=ListingIntelligence,
        )

    async def generate_angle_prompts(
        self, config: StudioConfig, listing: ListingIntelligence
    ) -> AnglePromptPack:
        variables = angle_prompt_variables(config, listing)
        variables["angle_labels"] = list(self.state.labels)
        rendered = self._prompts.load_and_render("angle_prompts", variables)
        return await self._structured.generate_structured(
            model=self.text_model,
            system_prompt=rendered["system"],
            user_text=rendered["user"],
            reference_image_urls=config.reference_image_urls,
            response_model=AnglePromptPack,
        )

    async def create_listing_pack(self, config: StudioConfig) -> ListingPack:
        """Run one full cycle for ``config``.

        Returns:
            ListingPack with the listing, prompts and one AngleResult per
            angle (success or error)

        Raises:
            ValidationError: No reference images (nothing is sent, state untouched)
            TimeoutError, TransportError, ProviderError: Listing or prompt
                generation failed; the cycle's angles are marked failed
        """
        if not config.reference_image_urls:
            raise ValidationError(
                "Provide at least one product reference photo (URL or upload) first."
            )

        cycle_id = self.state.begin_cycle()
        log = get_logger(__name__, cycle_id=cycle_id)
        log.info(f"Creating listing with {len(config.reference_image_urls)} reference photo(s)")

        try:
            listing = await self.generate_listing(config)
            self.state.set_listing(cycle_id, listing)
            prompt_pack = await self.generate_angle_prompts(config, listing)
        except Exception as e:
            log.error(f"Listing generation failed: {e}")
            self.state.fail_pending(cycle_id, describe_failure(e), classify_failure(e))
            raise

        settings = BatchSettings(
            width=config.image_size,
            height=config.image_size,
            base_seed=config.seed,
            safe=config.safe_mode,
            reference_image_urls=tuple(config.reference_image_urls),
            negative_prompt=prompt_pack.negative_prompt,
        )
        angles = [
            AngleRequest(label=label, prompt=prompt_pack.prompt_for(label))
            for label in self.state.labels
        ]
        results = await self._coordinator.generate_batch(cycle_id, angles, settings)

        succeeded = sum(1 for r in results if r.image is not None)
        log.info(f"Rendered {succeeded}/{len(results)} angles")
        return ListingPack(
            cycle_id=cycle_id, listing=listing, prompt_pack=prompt_pack, angles=results
        )
