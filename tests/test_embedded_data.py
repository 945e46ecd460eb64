import pytest

from pinboard_scraper.board_metadata import BoardMetadataResolver
from pinboard_scraper.errors import MalformedSourceError
from pinboard_scraper.extractors.embedded_data_extractor import (
    EmbeddedDataExtractor,
    EmbeddedDataParser,
    load_blob,
)
from pinboard_scraper.models import POPULATED_SIZES, SizeTag
from pinboard_scraper.scrape_context import STATIC_MARKUP, ScrapeContext

from board_test_utils import BOARD_URL, board_blob, board_html, hexhash, pin_id, pin_record, pin_url


@pytest.fixture
def resolver():
    return BoardMetadataResolver(BOARD_URL, "jane", "mid-century-chairs")


class TestEmbeddedDataParser:
    """Parsing the __PWS_DATA__ blob."""

    def test_three_valid_one_malformed(self, resolver):
        records = [pin_record(1), pin_record(2), pin_record(3, with_thumbnail=False), pin_record(4)]
        items, collection = EmbeddedDataParser().parse(board_html(board_blob(records)), resolver)

        assert [item.id for item in items] == [pin_id(1), pin_id(2), pin_id(4)]
        for item in items:
            for size in POPULATED_SIZES:
                assert item.url_for(size)
        assert items[0].url_for(SizeTag.ORIGINAL) == pin_url(hexhash(1), "originals")
        assert collection.name == "Mid Century Chairs"
        assert items[0].collection_id == "555000111"

    def test_duplicate_records_deduplicated(self, resolver):
        blob = board_blob([pin_record(1)], extra={"feed": [pin_record(1), pin_record(2)]})
        items, _ = EmbeddedDataParser().parse(board_html(blob), resolver)
        assert [item.id for item in items] == [pin_id(1), pin_id(2)]

    def test_related_and_story_nodes_skipped(self, resolver):
        blob = board_blob(
            [pin_record(1)],
            extra={
                "relatedPins": [pin_record(50)],
                "moreIdeas": {"items": [pin_record(51)]},
                "carousel": {"type": "story", "pins": [pin_record(52)]},
                "section": {"section_type": "suggested", "pins": [pin_record(53)]},
            },
        )
        items, _ = EmbeddedDataParser().parse(board_html(blob), resolver)
        assert [item.id for item in items] == [pin_id(1)]

    def test_malformed_blob_degrades_to_empty(self, resolver, caplog):
        items, collection = EmbeddedDataParser().parse(board_html(raw_script='{"props": [broken'), resolver)
        assert items == []
        assert collection is None
        assert "Failed to parse __PWS_DATA__" in caplog.text
        assert "Script content sample" in caplog.text

    def test_missing_blob(self, resolver):
        items, collection = EmbeddedDataParser().parse("<html><body>nothing</body></html>", resolver)
        assert items == [] and collection is None

    def test_depth_bound(self, resolver):
        nested = pin_record(9)
        for _ in range(12):
            nested = {"wrap": nested}
        items, _ = EmbeddedDataParser(max_depth=10).parse(board_html(nested), resolver)
        assert items == []

    def test_load_blob_raises_with_sample(self):
        with pytest.raises(MalformedSourceError) as exc_info:
            load_blob(board_html(raw_script="x" * 500))
        assert len(exc_info.value.sample) == 200


class TestBoardMetadata:
    def test_slug_fallback(self, resolver):
        info = resolver.from_blob({"unrelated": True})
        assert info.name == "mid-century-chairs"
        assert info.id == "jane/mid-century-chairs"
        assert info.expected_count is None
        assert info.owner_handle == "jane"

    def test_structured_board_node(self, resolver):
        info = resolver.from_blob(board_blob([], pin_count=321))
        assert info.expected_count == 321
        assert info.id == "555000111"

    @pytest.mark.parametrize("text,count", [
        ('{"pin_count": 12}', 12),
        ('{"board_pin_count": 40}', 40),
        ('{"pinCount": 7}', 7),
        ('{"pin_count": "88"}', 88),
        ('{"nothing": 1}', None),
    ])
    def test_pin_count_variants(self, text, count):
        assert BoardMetadataResolver.search_pin_count(text) == count

    def test_feed_response_board(self, resolver):
        data = {"resource_response": {"data": {"board": {"id": "777", "name": "Chairs", "pin_count": 9}}}}
        info = resolver.from_feed_response(data)
        assert (info.id, info.name, info.expected_count) == ("777", "Chairs", 9)


class TestEmbeddedDataExtractor:
    @pytest.mark.asyncio
    async def test_updates_context_collection(self):
        context = ScrapeContext(board_url=BOARD_URL)
        context.markup[STATIC_MARKUP] = board_html(board_blob([pin_record(1)], pin_count=30))
        extractor = EmbeddedDataExtractor(STATIC_MARKUP)

        assert extractor.is_applicable(context)
        candidates = await extractor.extract(context)

        assert candidates.strategy == "embedded-data:static"
        assert len(candidates) == 1
        assert context.collection.expected_count == 30

    def test_not_applicable_without_markup(self):
        assert not EmbeddedDataExtractor("rendered").is_applicable(ScrapeContext(board_url=BOARD_URL))
