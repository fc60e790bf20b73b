"""Listing studio: listing copy plus four studio renders per item."""

from snapsell.core.studio.models import (
    ANGLE_LABELS,
    AnglePromptPack,
    AngleResult,
    AngleStatus,
    BackgroundStyle,
    Condition,
    ListingIntelligence,
    ListingPack,
    Platform,
    StudioConfig,
)
from snapsell.core.studio.errors import (
    ExhaustedFallbackError,
    FailureCause,
    StudioError,
    ValidationError,
    classify_failure,
    describe_failure,
)
from snapsell.core.studio.images import ImageSpool, RenderedImage
from snapsell.core.studio.orchestrator import (
    FALLBACK_STRATEGIES,
    GenerationRequest,
    ImageFallbackOrchestrator,
    ImageGenerationResult,
)
from snapsell.core.studio.state import StudioState
from snapsell.core.studio.batch import AngleRequest, BatchImageCoordinator, BatchSettings
from snapsell.core.studio.flow import ListingStudio

__all__ = [
    "ANGLE_LABELS",
    "FALLBACK_STRATEGIES",
    "AnglePromptPack",
    "AngleRequest",
    "AngleResult",
    "AngleStatus",
    "BackgroundStyle",
    "BatchImageCoordinator",
    "BatchSettings",
    "Condition",
    "ExhaustedFallbackError",
    "FailureCause",
    "GenerationRequest",
    "ImageFallbackOrchestrator",
    "ImageGenerationResult",
    "ImageSpool",
    "ListingIntelligence",
    "ListingPack",
    "ListingStudio",
    "Platform",
    "RenderedImage",
    "StudioConfig",
    "StudioError",
    "StudioState",
    "ValidationError",
    "classify_failure",
    "describe_failure",
]
