"""
Resolve a hosted artwork URL for a media item, reusing cached uploads.
"""
import time
from typing import Callable

from .cache import CacheEntry, UrlCache, find
from .imgbb import ImgBBClient, ensure_url
from .logger import get_logger

logger = get_logger()


def get_image(item_id: str, fetch_artwork: Callable[[], bytes], cache: UrlCache,
              uploader: ImgBBClient, clock: Callable[[], float] = time.time) -> str:
    """
    Return an ImgBB URL for ``item_id``.

    A cached, unexpired URL is returned without touching the disk. Otherwise the
    artwork is fetched and uploaded, and the cache file is rewritten once with the
    new entry replacing any older ones for the same item.

    Every failure (cache I/O, fetch, upload) propagates and leaves the file as it was.
    """
    with cache.lock:
        entries = cache.load()
        now = int(clock())

        found = find(entries, item_id)
        if found is not None:
            _, entry = found
            if not entry.is_expired(now):
                return ensure_url(entry.url)
            logger.debug(f"Cached URL for {item_id} expired, uploading again.")

        url = uploader.upload(fetch_artwork())
        expires_at = now + uploader.expiration if uploader.expiration else None

        # Last write wins: drops the expired entry and any duplicates for this item.
        entries = [e for e in entries if e.id != item_id]
        entries.append(CacheEntry(id=item_id, url=url, expires_at=expires_at))
        cache.save(entries)

        logger.info(f"Uploaded and cached artwork: {url}")
        return url
