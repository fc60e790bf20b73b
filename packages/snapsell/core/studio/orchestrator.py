"""Image fallback orchestrator.

Renders one image through a fixed, ordered chain of strategies:

1. primary model with the reference photos
2. secondary model with the reference photos (degraded)
3. primary model without reference photos (degraded)

The first strategy that yields a decodable image wins. Failures of earlier
strategies are logged and never raised; only exhausting the chain raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

from snapsell.core.api.http.client import AsyncApiClient, build_api_error
from snapsell.core.api.http.errors import ApiError, DecodeError
from snapsell.core.studio.errors import ExhaustedFallbackError
from snapsell.core.studio.images import ImageDecodeError, ImageSpool, RenderedImage

logger = logging.getLogger(__name__)

PRIMARY_IMAGE_MODEL = "nanobanana-pro"
SECONDARY_IMAGE_MODEL = "kontext"

FALLBACK_MODEL_WARNING = "fallback model used; results may vary slightly"
REFERENCE_DROPPED_WARNING = "reference photo could not be used; results may not match the item"

REFERENCE_SEPARATOR = "|"


class ModelRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class AttemptStrategy:
    """One step of the fallback chain."""

    model_role: ModelRole
    use_reference_images: bool
    degraded: bool = False
    warning: str | None = None


FALLBACK_STRATEGIES: tuple[AttemptStrategy, ...] = (
    AttemptStrategy(ModelRole.PRIMARY, use_reference_images=True),
    AttemptStrategy(
        ModelRole.SECONDARY,
        use_reference_images=True,
        degraded=True,
        warning=FALLBACK_MODEL_WARNING,
    ),
    AttemptStrategy(
        ModelRole.PRIMARY,
        use_reference_images=False,
        degraded=True,
        warning=REFERENCE_DROPPED_WARNING,
    ),
)


@dataclass(frozen=True)
class GenerationRequest:
    """Everything that stays fixed across the attempts for one image.

    Attributes:
        prompt: Image prompt text
        width: Pixel width
        height: Pixel height
        seed: Render seed
        safe: Safety filter flag
        reference_image_urls: Reference photos, in order
        negative_prompt: Optional negative prompt
    """

    prompt: str
    width: int
    height: int
    seed: int
    safe: bool = True
    reference_image_urls: tuple[str, ...] = ()
    negative_prompt: str | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        object.__setattr__(self, "reference_image_urls", tuple(self.reference_image_urls))


@dataclass(frozen=True)
class AttemptSuccess:
    strategy: AttemptStrategy
    model_used: str
    image: RenderedImage

    @property
    def degraded(self) -> bool:
        return self.strategy.degraded

    @property
    def warning(self) -> str | None:
        return self.strategy.warning


@dataclass(frozen=True)
class AttemptFailure:
    strategy: AttemptStrategy
    model: str
    cause: ApiError


AttemptResult = AttemptSuccess | AttemptFailure


@dataclass(frozen=True)
class ImageGenerationResult:
    image: RenderedImage
    model_used: str
    degraded: bool
    warning: str | None
    attempts: int


def build_image_path(prompt: str) -> str:
    """Image endpoint path with the prompt percent-encoded as one segment."""
    return f"/image/{quote(prompt, safe='')}"


def build_image_params(
    request: GenerationRequest, *, model: str, use_reference_images: bool
) -> dict[str, str]:
    """Query parameters for one attempt.

    ``image`` carries the pipe-joined reference URLs and is present only when
    the strategy uses references and there are any.
    """
    params = {
        "model": model,
        "width": str(request.width),
        "height": str(request.height),
        "seed": str(request.seed),
        "safe": "true" if request.safe else "false",
    }
    if request.negative_prompt:
        params["negative_prompt"] = request.negative_prompt
    if use_reference_images and request.reference_image_urls:
        params["image"] = REFERENCE_SEPARATOR.join(request.reference_image_urls)
    return params


class ImageFallbackOrchestrator:
    """Runs the fallback chain against the image endpoint.

    Args:
        http_client: Client bound to the image service base URL (with auth)
        spool: Where decoded images are written
        primary_model: Model for strategies 1 and 3
        secondary_model: Model for strategy 2
    """

    def __init__(
        self,
        http_client: AsyncApiClient,
        spool: ImageSpool,
        *,
        primary_model: str = PRIMARY_IMAGE_MODEL,
        secondary_model: str = SECONDARY_IMAGE_MODEL,
    ) -> None:
        self._http = http_client
        self._spool = spool
        self.primary_model = primary_model
        self.secondary_model = secondary_model

    def model_for(self, role: ModelRole) -> str:
        return self.primary_model if role is ModelRole.PRIMARY else self.secondary_model

    async def attempt(self, strategy: AttemptStrategy, request: GenerationRequest) -> AttemptResult:
        """Run a single strategy. ApiErrors become an AttemptFailure."""
        model = self.model_for(strategy.model_role)
        params = build_image_params(
            request, model=model, use_reference_images=strategy.use_reference_images
        )
        try:
            image = await self._fetch(build_image_path(request.prompt), params)
        except ApiError as e:
            return AttemptFailure(strategy=strategy, model=model, cause=e)
        return AttemptSuccess(strategy=strategy, model_used=model, image=image)

    async def generate(self, request: GenerationRequest) -> ImageGenerationResult:
        """Render one image, falling back through the strategies in order.

        Raises:
            ExhaustedFallbackError: All strategies failed
        """
        failures: list[AttemptFailure] = []
        total = len(FALLBACK_STRATEGIES)

        for number, strategy in enumerate(FALLBACK_STRATEGIES, start=1):
            outcome = await self.attempt(strategy, request)
            if isinstance(outcome, AttemptSuccess):
                if outcome.degraded:
                    logger.info(
                        "Image rendered on attempt %d/%d with %s (references=%s)",
                        number,
                        total,
                        outcome.model_used,
                        strategy.use_reference_images,
                    )
                return ImageGenerationResult(
                    image=outcome.image,
                    model_used=outcome.model_used,
                    degraded=outcome.degraded,
                    warning=outcome.warning,
                    attempts=number,
                )

            failures.append(outcome)
            logger.warning(
                "Image attempt %d/%d failed (model=%s, references=%s): %s",
                number,
                total,
                outcome.model,
                strategy.use_reference_images,
                outcome.cause,
            )

        raise ExhaustedFallbackError(failures)

    async def _fetch(self, path: str, params: dict[str, str]) -> RenderedImage:
        response = await self._http.get_binary(path, params=params)
        url = str(response.request.url)
        content_type = response.headers.get("content-type", "")

        try:
            return await self._spool.materialize(
                response.content, content_type=content_type, source_url=url
            )
        except ImageDecodeError as e:
            raise build_api_error(
                exc_type=DecodeError,
                message=str(e),
                method="GET",
                url=url,
                status_code=response.status_code,
                cause=e,
            ) from e
