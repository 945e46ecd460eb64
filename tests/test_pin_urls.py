import pytest

from pinboard_scraper.models import Item, SizeTag
from pinboard_scraper.pin_urls import (
    build_variants,
    identity_hash,
    is_valid_identity_hash,
    parse_board_url,
    size_segment,
    transform_image_url,
)

from board_test_utils import hexhash, pin_url


class TestSizeSubstitution:
    """Resolution segment rewriting."""

    @pytest.mark.parametrize("size", list(SizeTag))
    def test_idempotent(self, size):
        url = pin_url(hexhash(7), "236x")
        once = transform_image_url(url, size)
        assert transform_image_url(once, size) == once

    def test_rewrites_only_the_segment(self):
        image_hash = hexhash(42)
        url = pin_url(image_hash, "236x")
        assert transform_image_url(url, SizeTag.ORIGINAL) == pin_url(image_hash, "originals")
        assert transform_image_url(url, SizeTag.LARGE) == pin_url(image_hash, "736x")

    def test_tag_names_and_raw_segments(self):
        image_hash = hexhash(42)
        url = pin_url(image_hash, "236x")
        assert transform_image_url(url, "large") == pin_url(image_hash, "736x")
        assert transform_image_url(url, "original") == pin_url(image_hash, "originals")
        assert transform_image_url(url, "564x") == pin_url(image_hash, "564x")

    def test_path_containing_size_like_text_is_untouched(self):
        url = "https://i.pinimg.com/236x/ab/cd/ef/236x/" + hexhash(3) + ".jpg"
        assert transform_image_url(url, SizeTag.MEDIUM) == "https://i.pinimg.com/474x/ab/cd/ef/236x/" + hexhash(3) + ".jpg"

    def test_non_cdn_url_unchanged(self):
        url = "https://example.com/236x/picture.jpg"
        assert transform_image_url(url, SizeTag.LARGE) == url

    def test_size_segment(self):
        assert size_segment(pin_url(hexhash(1), "564x")) == "564x"
        assert size_segment("https://example.com/a.jpg") is None


class TestIdentityHash:
    """Cross-resolution identity."""

    def test_same_asset_same_hash_across_resolutions(self):
        image_hash = hexhash(99)
        hashes = {identity_hash(pin_url(image_hash, seg)) for seg in ("170x", "236x", "474x", "736x", "originals")}
        assert hashes == {image_hash}

    def test_extension_and_query_ignored(self):
        image_hash = hexhash(5)
        assert identity_hash(pin_url(image_hash, ext="png") + "?v=2") == image_hash

    @pytest.mark.parametrize("value,valid", [
        (hexhash(1), True),
        ("0123456789abcdef", True),
        ("logo", False),
        ("abc123", False),
        ("zzzzzzzzzzzzzzzzzzzz", False),
        (None, False),
    ])
    def test_validity(self, value, valid):
        assert is_valid_identity_hash(value) is valid

    def test_item_identity_hash_uses_variants(self):
        image_hash = hexhash(11)
        item = Item(id="900000000011", image_variants=build_variants(pin_url(image_hash)))
        assert item.identity_hash == image_hash


class TestBuildVariants:
    def test_populates_four_sizes(self):
        variants = build_variants(pin_url(hexhash(2), "474x"))
        assert set(variants) == {SizeTag.SMALL, SizeTag.MEDIUM, SizeTag.LARGE, SizeTag.ORIGINAL}
        assert variants[SizeTag.SMALL] == pin_url(hexhash(2), "236x")

    def test_known_urls_win(self):
        known = {SizeTag.MEDIUM: pin_url(hexhash(2), "564x")}
        variants = build_variants(pin_url(hexhash(2)), known)
        assert variants[SizeTag.MEDIUM] == known[SizeTag.MEDIUM]


class TestParseBoardUrl:
    @pytest.mark.parametrize("url,expected", [
        ("https://www.pinterest.com/jane/chairs/", ("jane", "chairs")),
        ("https://pinterest.co.uk/jane/chairs", ("jane", "chairs")),
        ("https://de.pinterest.com/jane/chairs/?invite=1", ("jane", "chairs")),
        ("https://www.pinterest.com/pin/123456789012/", None),
        ("https://www.pinterest.com/jane/", None),
        ("https://www.pinterest.com/search/pins/", None),
        ("https://example.com/jane/chairs/", None),
    ])
    def test_parse(self, url, expected):
        assert parse_board_url(url) == expected
