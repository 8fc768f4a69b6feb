"""Shared fixtures for JellyRPC tests."""

from unittest.mock import MagicMock

import pytest

from jellyrpc.cache import UrlCache


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> float:
        return float(self.now)


@pytest.fixture
def urls_path(tmp_path):
    return tmp_path / "jellyrpc" / "urls.json"


@pytest.fixture
def cache(urls_path):
    return UrlCache(urls_path)


@pytest.fixture
def clock():
    return FakeClock(1_700_000_000)


@pytest.fixture
def uploader():
    """ImgBB client stand-in with a 600 second TTL."""
    mock = MagicMock()
    mock.expiration = 600
    mock.upload.return_value = "https://i.ibb.co/abc/cover.jpg"
    return mock


@pytest.fixture
def base_config():
    """Minimal valid config dictionary."""
    return {
        "jellyfin": {
            "url": "https://jellyfin.example.com",
            "api_key": "jf-key",
            "username": "alice",
        },
        "discord": {"application_id": "1053747938519679018"},
    }
