import logging

import pytest

from board_test_utils import BOARD_URL


@pytest.fixture
def board_url():
    return BOARD_URL


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="pinboard_scraper")


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    monkeypatch.setenv("PINBOARD_SCRAPER_SETTINGS", str(path))
    return path
