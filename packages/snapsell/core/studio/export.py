"""Listing export and local edits."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from snapsell.core.studio.models import ListingIntelligence

_WHITESPACE = re.compile(r"\s+")


def format_listing_text(listing: ListingIntelligence) -> str:
    """Render the listing as copy-paste ready plain text."""
    pl = listing.platform_listing
    features = "\n".join(f"• {b}" for b in pl.bullets)
    checklist = "\n".join(f"[ ] {c}" for c in pl.condition_checklist)
    text = (
        f"TITLE: {pl.title}\n\n"
        f"DESCRIPTION:\n{pl.short_description}\n\n"
        f"KEY FEATURES:\n{features}\n\n"
        f"TAGS: \n{', '.join(pl.tags)}\n\n"
        f"CONDITION CHECKLIST:\n{checklist}\n\n"
        f"SUGGESTED CATEGORY: {listing.likely_category}"
    )
    return text.strip()


def listing_export_filename(listing: ListingIntelligence) -> str:
    """File name for a text export, e.g. ``listing-vintage-leather-ba.txt``."""
    stem = _WHITESPACE.sub("-", listing.platform_listing.title.lower()[:20])
    return f"listing-{stem}.txt"


def apply_listing_edit(
    listing: ListingIntelligence, path: Sequence[str | int], value: Any
) -> ListingIntelligence:
    """Return a copy of ``listing`` with the field at ``path`` replaced.

    Args:
        listing: Listing to edit (left untouched)
        path: Keys and list indexes, e.g. ("platform_listing", "bullets", 2)
        value: Replacement value

    Returns:
        New, re-validated ListingIntelligence

    Raises:
        KeyError: Path does not name an existing field
        pydantic.ValidationError: The edit breaks the schema
    """
    if not path:
        raise KeyError("Edit path is empty")

    data = listing.model_dump()
    node: Any = data
    for key in path[:-1]:
        node = _step(node, key)

    last = path[-1]
    _step(node, last)
    node[last] = value
    return ListingIntelligence.model_validate(data)


def _step(node: Any, key: str | int) -> Any:
    try:
        return node[key]
    except (KeyError, IndexError, TypeError) as e:
        raise KeyError(f"No listing field at {key!r}") from e
