"""Shared test fixtures."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from anime_monitor.core.state import CURSOR_KEY, EpisodeStateStore

MAGNET = "magnet:?xt=urn:btih:abc123&dn=Show+-+05"


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "data" / "episode.json"


@pytest.fixture
def write_cursor():
    """Write a raw cursor value, bypassing EpisodeStateStore validation."""

    def _write(path, episode) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({CURSOR_KEY: episode}), encoding="utf-8")

    return _write


@pytest.fixture
def store(state_file):
    return EpisodeStateStore(state_file, log=MagicMock())


@pytest.fixture
def locator():
    loc = MagicMock()
    loc.find_episode_page = AsyncMock(return_value="https://nyaa.si/view/101")
    loc.extract_magnet = AsyncMock(return_value=MAGNET)
    return loc


@pytest.fixture
def qb_client():
    client = MagicMock()
    client.authenticate = AsyncMock()
    client.submit = AsyncMock()
    return client
