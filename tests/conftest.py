"""Shared pytest fixtures for snapsell tests."""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from snapsell.core.studio.images import ImageSpool

# ============================================================================
# Image Fixtures
# ============================================================================


def make_png(width: int = 8, height: int = 8, color: str = "white") -> bytes:
    """Encode a small solid-color PNG."""
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def spool(tmp_path: Path) -> ImageSpool:
    return ImageSpool(tmp_path / "spool")


# ============================================================================
# Listing Fixtures
# ============================================================================


def _variant(prefix: str) -> dict[str, Any]:
    return {
        "title": f"{prefix} title",
        "short_description": f"{prefix} description",
        "bullets": [f"{prefix} bullet {i}" for i in range(5)],
    }


@pytest.fixture
def listing_payload() -> dict[str, Any]:
    """Valid ListingIntelligence payload."""
    return {
        "product_summary": "Brown leather messenger bag",
        "likely_category": "Bags",
        "key_attributes": ["leather", "brown"],
        "do_not_invent": ["brand"],
        "photo_style_prompt": "warm natural light on oak",
        "platform_listing": {
            "title": "Vintage Leather Messenger Bag",
            "short_description": "Roomy bag with brass buckles.",
            "bullets": [f"bullet {i}" for i in range(5)],
            "tags": [f"tag{i}" for i in range(10)],
            "condition_checklist": [f"check {i}" for i in range(6)],
        },
        "platform_variants": {
            "facebook_marketplace": _variant("fb"),
            "ebay": _variant("ebay"),
        },
    }


@pytest.fixture
def prompt_pack_payload() -> dict[str, Any]:
    """Valid AnglePromptPack payload."""
    return {
        "prompts": {
            "Front": "front view of the bag",
            "3/4 Angle": "three quarter view of the bag",
            "Side": "side view of the bag",
            "Detail": "close-up of the buckle",
        },
        "negative_prompt": "text, watermark",
    }


@pytest.fixture
def make_listing(listing_payload: dict[str, Any]) -> Callable[..., Any]:
    from snapsell.core.studio.models import ListingIntelligence

    def _make(**overrides: Any) -> ListingIntelligence:
        return ListingIntelligence.model_validate({**listing_payload, **overrides})

    return _make


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png
