import json

import pytest

from pinboard_scraper.pagination import (
    FeedPaginationExtractor,
    PaginationClient,
    feed_headers,
    feed_params,
)
from pinboard_scraper.models import CandidateSet, Tier
from pinboard_scraper.pin_records import bookmark_from_response, items_from_records
from pinboard_scraper.scrape_context import ItemAccumulator, ScrapeContext

from board_test_utils import BOARD_URL, FakeTransport, feed_response, no_sleep, pin_id, pin_record


def page_of(start, count, bookmark=None, **kwargs):
    return 200, feed_response([pin_record(n) for n in range(start, start + count)], bookmark, **kwargs)


class TestFeedRequest:
    def test_params_shape(self):
        params = feed_params("jane", "chairs", 25, bookmark="tok1")
        assert params["source_url"] == "/jane/chairs/"
        options = json.loads(params["data"])["options"]
        assert options["board_url"] == "/jane/chairs/"
        assert options["page_size"] == 25
        assert options["bookmarks"] == ["tok1"]
        assert options["field_set_key"] == "react_grid_pin"

    def test_first_page_has_no_bookmarks(self):
        options = json.loads(feed_params("jane", "chairs", 25)["data"])["options"]
        assert "bookmarks" not in options

    def test_headers_look_like_the_board_page(self):
        headers = feed_headers("jane", "chairs")
        assert headers["X-Requested-With"] == "XMLHttpRequest"
        assert headers["Referer"] == "https://www.pinterest.com/jane/chairs/"


class TestBookmarkProbing:
    @pytest.mark.parametrize("path", [
        "resource.options.bookmarks",
        "resource_response.bookmark",
        "resource_response.data.bookmark",
        "bookmark",
    ])
    def test_every_known_path(self, path):
        assert bookmark_from_response(feed_response([pin_record(1)], "tok", bookmark_path=path)) == "tok"

    def test_bookmark_lookup_order(self):
        data = {"resource": {"options": {"bookmarks": ["first"]}}, "bookmark": "last"}
        assert bookmark_from_response(data) == "first"

    def test_missing(self):
        assert bookmark_from_response({"resource_response": {"data": []}}) is None


class TestPaginationClient:
    """Continuation-token loop contract."""

    @pytest.mark.asyncio
    async def test_stops_after_page_with_no_new_items(self):
        transport = FakeTransport([
            page_of(1, 5, "b1"),
            page_of(6, 5, "b2"),
            page_of(1, 5, "b3"),  # repeats page one
            page_of(20, 5, "b4"),
        ])
        accumulator = ItemAccumulator()
        stats = await PaginationClient(transport, max_pages=10, sleep=no_sleep).paginate("jane", "chairs", accumulator)

        assert stats.pages == 3
        assert stats.stop_reason == "no-new-items"
        assert len(transport.calls) == 3
        assert len(accumulator) == 10

    @pytest.mark.asyncio
    async def test_never_exceeds_max_pages(self):
        transport = FakeTransport([page_of(n * 10, 10, f"b{n}") for n in range(1, 20)])
        accumulator = ItemAccumulator()
        stats = await PaginationClient(transport, max_pages=4, sleep=no_sleep).paginate("jane", "chairs", accumulator)

        assert len(transport.calls) == 4
        assert stats.stop_reason == "max-pages"
        assert len(accumulator) == 40

    @pytest.mark.asyncio
    async def test_stops_without_bookmark(self):
        transport = FakeTransport([page_of(1, 3, "b1"), page_of(4, 3, None)])
        stats = await PaginationClient(transport, sleep=no_sleep).paginate("jane", "chairs", ItemAccumulator())
        assert stats.pages == 2
        assert stats.stop_reason == "no-bookmark"

    @pytest.mark.asyncio
    async def test_bookmark_round_trips(self):
        transport = FakeTransport([page_of(1, 3, "opaque==token"), page_of(4, 3, None)])
        await PaginationClient(transport, sleep=no_sleep).paginate("jane", "chairs", ItemAccumulator())
        assert "bookmarks" not in transport.calls[0]["options"]
        assert transport.calls[1]["options"]["bookmarks"] == ["opaque==token"]

    @pytest.mark.asyncio
    async def test_non_success_is_exhaustion(self):
        transport = FakeTransport([page_of(1, 3, "b1"), (503, None)])
        accumulator = ItemAccumulator()
        stats = await PaginationClient(transport, sleep=no_sleep).paginate("jane", "chairs", accumulator)
        assert stats.stop_reason == "http-503"
        assert accumulator.ids() == [pin_id(1), pin_id(2), pin_id(3)]

    @pytest.mark.asyncio
    async def test_transport_error_is_exhaustion(self):
        async def broken(url, params, headers):
            raise OSError("connection reset")

        stats = await PaginationClient(broken, sleep=no_sleep).paginate("jane", "chairs", ItemAccumulator())
        assert stats.pages == 1
        assert stats.stop_reason == "http-0"

    @pytest.mark.asyncio
    async def test_delay_between_requests(self):
        delays = []

        async def record(seconds):
            delays.append(seconds)

        transport = FakeTransport([page_of(1, 2, "b1"), page_of(3, 2, "b2"), page_of(5, 2, None)])
        await PaginationClient(transport, sleep=record).paginate("jane", "chairs", ItemAccumulator())
        assert len(delays) == 2
        assert all(0.3 <= d <= 0.8 for d in delays)


class TestFeedPaginationExtractor:
    @pytest.mark.asyncio
    async def test_candidates_and_metadata(self):
        board = {"id": "555000111", "name": "Mid Century Chairs", "pin_count": 6}
        transport = FakeTransport([
            (200, feed_response([pin_record(n) for n in range(1, 4)], "b1", board=board)),
            (200, feed_response([pin_record(n) for n in range(4, 7)], None, board=board)),
        ])
        context = ScrapeContext(board_url=BOARD_URL)
        extractor = FeedPaginationExtractor(PaginationClient(transport, sleep=no_sleep))

        candidates = await extractor.extract(context)

        assert [item.id for item in candidates.items] == [pin_id(n) for n in range(1, 7)]
        assert context.candidates_for("feed-pagination") is candidates
        assert context.collection.expected_count == 6
        assert candidates.items[0].collection_id == "555000111"

    @pytest.mark.asyncio
    async def test_first_page_overlapping_embedded_data_continues(self):
        transport = FakeTransport([page_of(1, 3, "b1"), page_of(4, 3, None)])
        context = ScrapeContext(board_url=BOARD_URL)
        embedded = items_from_records([pin_record(n) for n in range(1, 4)])
        context.add_candidates(CandidateSet(strategy="embedded-data:static", tier=Tier.DOCUMENT, items=embedded))
        extractor = FeedPaginationExtractor(PaginationClient(transport, sleep=no_sleep))

        candidates = await extractor.extract(context)
        assert len(transport.calls) == 2
        assert len(candidates) == 6
