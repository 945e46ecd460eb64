import io
import os
from unittest.mock import MagicMock

import pytest
import requests
from PIL import Image

from pinboard_scraper import download_proxy
from pinboard_scraper.download_proxy import (
    ALTERNATE_USER_AGENTS,
    PRIMARY_USER_AGENT,
    DownloadReport,
    DownloadResult,
    FetchResult,
    ImageDownloader,
    RetryingFetchProxy,
    image_problem,
    looks_like_image,
)
from pinboard_scraper.errors import NetworkFailureError
from pinboard_scraper.fetcher import DocumentFetcher
from pinboard_scraper.models import SizeTag
from pinboard_scraper.pin_records import item_from_record

from board_test_utils import pin_record


def create_test_image():
    """Small JPEG for download tests."""
    img = Image.new('RGB', (10, 10), color='red')
    img_bytes = io.BytesIO()
    img.save(img_bytes, format='JPEG')
    return img_bytes.getvalue()


def fake_response(status, content=b"", content_type="image/jpeg"):
    response = MagicMock()
    response.status_code = status
    response.content = content
    response.headers = {"content-type": content_type}
    return response


def session_with(*responses):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return session


class TestRetryingFetchProxy:
    """Retry policy of the fetch proxy."""

    def test_two_403s_then_success(self):
        delays = []
        image = create_test_image()
        session = session_with(fake_response(403), fake_response(403), fake_response(200, image))
        proxy = RetryingFetchProxy(session=session, sleep=delays.append)

        result = proxy.fetch("https://i.pinimg.com/736x/aa/bb/cc/x.jpg")

        assert result.ok
        assert result.content == image
        assert result.retries == 2
        assert result.attempts == 3
        assert len(delays) == 2
        assert delays[0] < delays[1]
        assert 0.25 <= delays[0] <= 0.75

    def test_alternate_user_agent_after_block(self):
        session = session_with(fake_response(429), fake_response(200, b"x"))
        RetryingFetchProxy(session=session, sleep=lambda s: None).fetch("https://i.pinimg.com/a.jpg")

        first = session.get.call_args_list[0].kwargs["headers"]["User-Agent"]
        second = session.get.call_args_list[1].kwargs["headers"]["User-Agent"]
        assert first == PRIMARY_USER_AGENT
        assert second in ALTERNATE_USER_AGENTS

    def test_exponential_backoff_on_transport_errors(self):
        delays = []
        error = requests.ConnectionError("reset")
        session = session_with(error, error, error, error)
        result = RetryingFetchProxy(session=session, max_retries=3, sleep=delays.append).fetch("https://i.pinimg.com/a.jpg")

        assert not result.ok
        assert result.attempts == 4
        assert delays == [1.0, 2.0, 4.0]
        assert "reset" in result.error

    def test_not_found_then_success_is_retried(self):
        delays = []
        image = create_test_image()
        session = session_with(fake_response(404), fake_response(200, image))
        result = RetryingFetchProxy(session=session, sleep=delays.append).fetch("https://i.pinimg.com/a.jpg")

        assert result.ok
        assert result.content == image
        assert result.attempts == 2
        assert delays == [1.0]

    def test_not_found_gives_up_after_max_retries(self):
        delays = []
        session = session_with(*[fake_response(404) for _ in range(4)])
        result = RetryingFetchProxy(session=session, sleep=delays.append).fetch("https://i.pinimg.com/a.jpg")

        assert not result.ok
        assert result.status == 404
        assert result.error == "HTTP error 404"
        assert delays == [1.0, 2.0, 4.0]

    def test_empty_body_is_retried(self):
        image = create_test_image()
        session = session_with(fake_response(200, b""), fake_response(200, image))
        result = RetryingFetchProxy(session=session, sleep=lambda s: None).fetch("https://i.pinimg.com/a.jpg")

        assert result.ok
        assert result.content == image
        assert result.retries == 1

    def test_rejected_body_is_retried(self):
        image = create_test_image()
        session = session_with(fake_response(200, b"<html>challenge</html>", "application/octet-stream"),
                               fake_response(200, image, "application/octet-stream"))
        result = RetryingFetchProxy(session=session, sleep=lambda s: None).fetch(
            "https://i.pinimg.com/a.jpg", validate=image_problem)

        assert result.ok
        assert result.content == image
        assert result.retries == 1

    def test_referer_header(self):
        session = session_with(fake_response(200, b"x"))
        RetryingFetchProxy(session=session).fetch("https://i.pinimg.com/a.jpg", referer="https://www.pinterest.com/jane/chairs/")
        assert session.get.call_args.kwargs["headers"]["Referer"] == "https://www.pinterest.com/jane/chairs/"


class _StubProxy:
    def __init__(self, results):
        self.results = results

    def fetch(self, url, referer=None, headers=None, validate=None):
        result = self.results[url]
        if isinstance(result, Exception):
            raise result
        if result.ok and validate is not None:
            problem = validate(result.content, result.content_type)
            if problem:
                return FetchResult(url=url, ok=False, status=result.status, error=problem)
        return result


class TestImageDownloader:
    def _items(self, *numbers):
        return [item_from_record(pin_record(n)) for n in numbers]

    def test_verifies_bytes_when_content_type_is_not_image(self):
        item, bad = self._items(1, 2)
        proxy = _StubProxy({
            item.url_for(SizeTag.LARGE): FetchResult(url="", ok=True, status=200, content=create_test_image(),
                                                    content_type="application/octet-stream"),
            bad.url_for(SizeTag.LARGE): FetchResult(url="", ok=True, status=200, content=b"<html>",
                                                   content_type="text/html"),
        })
        downloader = ImageDownloader(proxy)
        assert downloader.download(item, SizeTag.LARGE).ok
        failed = downloader.download(bad, SizeTag.LARGE)
        assert not failed.ok
        assert "not an image" in failed.error

    @pytest.mark.asyncio
    async def test_batch_continues_past_failures(self):
        items = self._items(1, 2, 3)
        image = create_test_image()
        proxy = _StubProxy({
            items[0].url_for(SizeTag.ORIGINAL): FetchResult(url="", ok=True, status=200, content=image, content_type="image/jpeg"),
            items[1].url_for(SizeTag.ORIGINAL): FetchResult(url="", ok=False, status=403, retries=3, error="HTTP error 403"),
            items[2].url_for(SizeTag.ORIGINAL): FetchResult(url="", ok=True, status=200, content=image, content_type="image/jpeg"),
        })
        report = await ImageDownloader(proxy, max_workers=2).download_all(items, SizeTag.ORIGINAL)

        assert report.succeeded == 2
        assert report.failed == 1
        assert report.to_dict()["failures"] == {items[1].id: "HTTP error 403"}

    @pytest.mark.asyncio
    async def test_batch_survives_an_item_that_raises(self):
        items = self._items(1, 2, 3)
        image = create_test_image()
        proxy = _StubProxy({
            items[0].url_for(SizeTag.LARGE): FetchResult(url="", ok=True, status=200, content=image, content_type="image/jpeg"),
            items[1].url_for(SizeTag.LARGE): Image.DecompressionBombError("too many pixels"),
            items[2].url_for(SizeTag.LARGE): FetchResult(url="", ok=True, status=200, content=image, content_type="image/jpeg"),
        })
        report = await ImageDownloader(proxy, max_workers=3).download_all(items, SizeTag.LARGE)

        assert report.succeeded == 2
        assert report.failed == 1
        assert "DecompressionBombError" in report.to_dict()["failures"][items[1].id]

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        report = await ImageDownloader(_StubProxy({})).download_all([])
        assert report.succeeded == report.failed == 0


class TestImageChecks:
    def test_decodable_bytes_pass(self):
        assert looks_like_image(create_test_image())
        assert image_problem(create_test_image(), "application/octet-stream") is None

    def test_typed_image_passes_without_decoding(self):
        assert image_problem(b"\x00\x01", "image/webp") is None

    def test_markup_is_rejected(self):
        assert not looks_like_image(b"<html></html>")
        assert "text/html" in image_problem(b"<html></html>", "text/html")

    def test_decompression_bomb_is_not_an_image(self, monkeypatch):
        def raise_bomb(fp):
            raise Image.DecompressionBombError("too many pixels")

        monkeypatch.setattr(download_proxy.Image, "open", raise_bomb)
        assert looks_like_image(create_test_image()) is False


class TestDownloadReport:
    def test_save_to_numbers_in_item_order(self, tmp_path):
        items = [item_from_record(pin_record(n)) for n in (1, 2, 3)]
        report = DownloadReport()
        report.add(DownloadResult(item_id=items[2].id, url="u", ok=True, content=b"c"))
        report.add(DownloadResult(item_id=items[0].id, url="u", ok=True, content=b"a"))
        report.add(DownloadResult(item_id=items[1].id, url="u", ok=False, error="HTTP error 404"))

        paths = report.save_to(str(tmp_path), items)

        assert [os.path.basename(p) for p in paths] == [
            f"001_pinterest_{items[0].id}.jpg",
            f"003_pinterest_{items[2].id}.jpg",
        ]
        with open(paths[1], "rb") as f:
            assert f.read() == b"c"


class TestDocumentFetcher:
    URL = "https://www.pinterest.com/jane/chairs/"

    def test_returns_text(self):
        proxy = _StubProxy({self.URL: FetchResult(url=self.URL, ok=True, status=200, content="<html>é</html>".encode())})
        assert DocumentFetcher(proxy).fetch(self.URL) == "<html>é</html>"

    def test_failure_raises_network_error(self):
        proxy = _StubProxy({self.URL: FetchResult(url=self.URL, ok=False, status=403, error="HTTP error 403")})
        with pytest.raises(NetworkFailureError) as excinfo:
            DocumentFetcher(proxy).fetch(self.URL)
        assert excinfo.value.status == 403
