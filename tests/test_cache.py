"""Tests for the ImgBB URL cache file."""

import json

import pytest

from jellyrpc.cache import CacheEntry, UrlCache, find


class TestLoad:
    """Tests for UrlCache.load."""

    def test_missing_file_creates_empty_array(self, cache, urls_path):
        """A missing file and its parent directory are created holding []."""
        assert not urls_path.parent.exists()

        assert cache.load() == []
        assert urls_path.read_text(encoding="utf-8") == "[]"

    def test_invalid_json_is_discarded(self, cache, urls_path):
        """Unparseable content is replaced by an empty array, not backed up."""
        urls_path.parent.mkdir(parents=True)
        urls_path.write_text('[{"id": "abc123", "url": ', encoding="utf-8")

        assert cache.load() == []
        assert urls_path.read_text(encoding="utf-8") == "[]"
        assert list(urls_path.parent.iterdir()) == [urls_path]

    def test_invalid_utf8_is_discarded(self, cache, urls_path):
        """Bytes that aren't UTF-8 are treated like any other corrupted file."""
        urls_path.parent.mkdir(parents=True)
        urls_path.write_bytes(b"\xff\xfe[")

        assert cache.load() == []
        assert urls_path.read_text(encoding="utf-8") == "[]"

    @pytest.mark.parametrize(
        "content",
        [
            '{"id": "abc123", "url": "https://i.ibb.co/x.jpg"}',
            '[{"id": "abc123"}]',
            '[{"id": "abc123", "url": "https://i.ibb.co/x.jpg", "expiration_from_unix_seconds": -5}]',
            '"urls"',
        ],
    )
    def test_wrong_shape_is_discarded(self, cache, urls_path, content):
        """Valid JSON that isn't a list of entries counts as corrupted."""
        urls_path.parent.mkdir(parents=True)
        urls_path.write_text(content, encoding="utf-8")

        assert cache.load() == []
        assert json.loads(urls_path.read_text(encoding="utf-8")) == []

    def test_entries_without_expiration_never_expire(self, cache, urls_path):
        """Entries in the older shape load with no expiry."""
        urls_path.parent.mkdir(parents=True)
        urls_path.write_text('[{"id": "abc123", "url": "https://i.ibb.co/x.jpg"}]', encoding="utf-8")

        entries = cache.load()

        assert entries == [CacheEntry(id="abc123", url="https://i.ibb.co/x.jpg")]
        assert entries[0].expires_at is None
        assert not entries[0].is_expired(2**40)

    def test_unwritable_location_raises(self, tmp_path):
        """Failing to recreate the file is surfaced."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(OSError):
            UrlCache(blocker / "urls.json").load()


class TestSave:
    """Tests for UrlCache.save."""

    def test_round_trip(self, cache, urls_path):
        """Saved entries load back with the same id, url and expiry."""
        urls_path.parent.mkdir(parents=True)
        entries = [
            CacheEntry(id="abc123", url="https://i.ibb.co/a.jpg", expires_at=1_700_000_600),
            CacheEntry(id="def456", url="https://i.ibb.co/b.jpg"),
            CacheEntry(id="ghi789", url="https://i.ibb.co/c.jpg", expires_at=0),
        ]

        cache.save(entries)

        assert cache.load() == entries

    def test_uses_persisted_field_names(self, cache, urls_path):
        """Expiry is written as expiration_from_unix_seconds and omitted when unset."""
        urls_path.parent.mkdir(parents=True)
        cache.save([
            CacheEntry(id="abc123", url="https://i.ibb.co/a.jpg", expires_at=1_700_000_600),
            CacheEntry(id="def456", url="https://i.ibb.co/b.jpg"),
        ])

        assert json.loads(urls_path.read_text(encoding="utf-8")) == [
            {"id": "abc123", "url": "https://i.ibb.co/a.jpg", "expiration_from_unix_seconds": 1_700_000_600},
            {"id": "def456", "url": "https://i.ibb.co/b.jpg"},
        ]

    def test_truncates_previous_contents(self, cache, urls_path):
        """A shorter payload fully replaces a longer one."""
        urls_path.parent.mkdir(parents=True)
        urls_path.write_text(" " * 500, encoding="utf-8")

        cache.save([])

        assert urls_path.read_text(encoding="utf-8") == "[]"

    def test_write_error_propagates(self, tmp_path):
        """Write failures reach the caller."""
        with pytest.raises(OSError):
            UrlCache(tmp_path).save([])


class TestFind:
    """Tests for find."""

    def test_returns_index_and_entry(self):
        entries = [
            CacheEntry(id="abc123", url="https://i.ibb.co/a.jpg"),
            CacheEntry(id="def456", url="https://i.ibb.co/b.jpg"),
        ]

        assert find(entries, "def456") == (1, entries[1])

    def test_first_match_wins(self):
        entries = [
            CacheEntry(id="abc123", url="https://i.ibb.co/a.jpg"),
            CacheEntry(id="abc123", url="https://i.ibb.co/b.jpg"),
        ]

        assert find(entries, "abc123") == (0, entries[0])

    def test_miss(self):
        assert find([], "abc123") is None


class TestCacheEntry:
    """Tests for CacheEntry expiry."""

    @pytest.mark.parametrize(
        "offset, expired",
        [(-1, True), (0, False), (1, False)],
    )
    def test_expiry_boundary(self, offset, expired):
        """Only an expiry strictly before now counts as expired."""
        now = 1_700_000_000
        entry = CacheEntry(id="abc123", url="https://i.ibb.co/a.jpg", expires_at=now + offset)

        assert entry.is_expired(now) is expired
