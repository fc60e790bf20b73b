"""Tests for listing export and local edits."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as SchemaValidationError

from snapsell.core.studio.export import (
    apply_listing_edit,
    format_listing_text,
    listing_export_filename,
)


def test_format_listing_text(make_listing) -> None:
    text = format_listing_text(make_listing())

    assert text.startswith("TITLE: Vintage Leather Messenger Bag\n\nDESCRIPTION:\n")
    assert "KEY FEATURES:\n• bullet 0\n• bullet 1" in text
    assert "TAGS: \ntag0, tag1, tag2" in text
    assert "CONDITION CHECKLIST:\n[ ] check 0" in text
    assert text.endswith("SUGGESTED CATEGORY: Bags")


def test_listing_export_filename(make_listing) -> None:
    assert listing_export_filename(make_listing()) == "listing-vintage-leather-mess.txt"


def test_apply_listing_edit_nested_index(make_listing) -> None:
    listing = make_listing()

    edited = apply_listing_edit(listing, ("platform_listing", "bullets", 2), "Brass buckles")

    assert edited.platform_listing.bullets[2] == "Brass buckles"
    assert listing.platform_listing.bullets[2] == "bullet 2"


def test_apply_listing_edit_variant(make_listing) -> None:
    edited = apply_listing_edit(
        make_listing(), ("platform_variants", "ebay", "title"), "eBay title"
    )
    assert edited.platform_variants.ebay.title == "eBay title"


def test_apply_listing_edit_unknown_path(make_listing) -> None:
    with pytest.raises(KeyError):
        apply_listing_edit(make_listing(), ("platform_listing", "price"), "10")
    with pytest.raises(KeyError):
        apply_listing_edit(make_listing(), ("platform_listing", "tags", 99), "x")


def test_apply_listing_edit_revalidates(make_listing) -> None:
    with pytest.raises(SchemaValidationError):
        apply_listing_edit(make_listing(), ("platform_listing", "tags"), ["just one"])
