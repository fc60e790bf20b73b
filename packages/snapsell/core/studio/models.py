"""Studio data models.

Response models (ListingIntelligence, AnglePromptPack) double as the strict
JSON schemas sent to the generation service, so they forbid extra keys and
pin list lengths.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from snapsell.core.studio.errors import FailureCause
from snapsell.core.studio.images import RenderedImage

ANGLE_LABELS: tuple[str, ...] = ("Front", "3/4 Angle", "Side", "Detail")

MAX_SEED = 100_000


class Condition(str, Enum):
    NEW = "New"
    LIKE_NEW = "Like New"
    GOOD = "Good"
    FAIR = "Fair"
    FOR_PARTS = "For parts"


class Platform(str, Enum):
    FACEBOOK_MARKETPLACE = "Facebook Marketplace"
    EBAY = "eBay"
    ETSY = "Etsy"
    KIJIJI = "Kijiji"
    SHOPIFY = "Shopify"


class BackgroundStyle(str, Enum):
    PURE_WHITE = "Pure white"
    SOFT_GRADIENT = "Soft gradient"
    REAL_TABLETOP = "Real tabletop"
    LIFESTYLE_MINIMAL = "Lifestyle minimal"


def random_seed() -> int:
    return random.randrange(MAX_SEED)


class StudioConfig(BaseModel):
    """One listing job: item context, render settings and reference photos.

    Attributes:
        item_name: Item name ("" when unknown)
        brand: Brand ("" when unknown)
        condition: Item condition
        category_hint: Optional category hint
        platform: Primary marketplace
        background_style: Studio background for renders
        image_size: Square render size in pixels
        seed: Base seed; angle i renders with seed + i
        reference_image_urls: Public reference photo URLs, order kept
        safe_mode: Ask the image service to filter unsafe content
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    item_name: str = ""
    brand: str = ""
    condition: Condition = Condition.NEW
    category_hint: str = ""
    platform: Platform = Platform.FACEBOOK_MARKETPLACE
    background_style: BackgroundStyle = BackgroundStyle.PURE_WHITE
    image_size: Literal[768, 1024] = 1024
    seed: int = Field(default_factory=random_seed, ge=0)
    reference_image_urls: list[str] = Field(default_factory=list)
    safe_mode: bool = True

    @field_validator("item_name", "brand", "category_hint")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    @field_validator("reference_image_urls")
    @classmethod
    def _normalize_urls(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for url in v:
            url = url.strip()
            if url and url not in seen:
                seen.append(url)
        return seen

    def add_reference_url(self, url: str) -> bool:
        """Append a reference URL. Returns False when empty or already present."""
        url = url.strip()
        if not url or url in self.reference_image_urls:
            return False
        self.reference_image_urls = [*self.reference_image_urls, url]
        return True

    def remove_reference_url(self, index: int) -> str:
        """Remove and return the reference URL at ``index``."""
        urls = list(self.reference_image_urls)
        removed = urls.pop(index)
        self.reference_image_urls = urls
        return removed

    def clear_reference_urls(self) -> None:
        self.reference_image_urls = []


class PlatformVariant(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    short_description: str
    bullets: list[str] = Field(min_length=5, max_length=5)


class PlatformListing(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    short_description: str
    bullets: list[str] = Field(min_length=5, max_length=5)
    tags: list[str] = Field(min_length=10, max_length=10)
    condition_checklist: list[str] = Field(min_length=6, max_length=6)


class PlatformVariants(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    facebook_marketplace: PlatformVariant
    ebay: PlatformVariant


class ListingIntelligence(BaseModel):
    """Structured listing copy produced from the reference photos."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    product_summary: str
    likely_category: str
    key_attributes: list[str]
    do_not_invent: list[str]
    photo_style_prompt: str
    platform_listing: PlatformListing
    platform_variants: PlatformVariants


class AnglePrompts(BaseModel):
    """One image prompt per fixed angle label."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    front: str = Field(alias="Front")
    three_quarter: str = Field(alias="3/4 Angle")
    side: str = Field(alias="Side")
    detail: str = Field(alias="Detail")

    def for_label(self, label: str) -> str | None:
        name = _LABEL_FIELDS.get(label)
        return getattr(self, name) if name else None


_LABEL_FIELDS = {
    "Front": "front",
    "3/4 Angle": "three_quarter",
    "Side": "side",
    "Detail": "detail",
}


class AnglePromptPack(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    prompts: AnglePrompts
    negative_prompt: str

    def prompt_for(self, label: str) -> str | None:
        """Prompt text for an angle label, or None for an unknown label."""
        return self.prompts.for_label(label)


class AngleStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class AngleResult(BaseModel):
    """Display state of one angle within one cycle."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    label: str
    status: AngleStatus = AngleStatus.IDLE
    image: RenderedImage | None = None
    prompt: str | None = None
    model_used: str | None = None
    degraded: bool = False
    warning: str | None = None
    error_message: str | None = None
    error_cause: FailureCause | None = None

    @classmethod
    def pending(cls, label: str) -> AngleResult:
        return cls(label=label, status=AngleStatus.PENDING)

    @property
    def badge(self) -> str | None:
        """Badge shown next to a degraded render."""
        if self.status is AngleStatus.SUCCESS and self.degraded:
            return "Studio Refined"
        return None


@dataclass(frozen=True)
class ListingPack:
    """Outcome of one full listing cycle."""

    cycle_id: int
    listing: ListingIntelligence
    prompt_pack: AnglePromptPack
    angles: list[AngleResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[AngleResult]:
        return [a for a in self.angles if a.status is AngleStatus.SUCCESS]

    @property
    def failed(self) -> list[AngleResult]:
        return [a for a in self.angles if a.status is AngleStatus.ERROR]
