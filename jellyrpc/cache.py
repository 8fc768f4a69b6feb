"""
On-disk cache of ImgBB image URLs, keyed by Jellyfin item id.

The cache is a single JSON array:

    [{"id": "...", "url": "https://i.ibb.co/...", "expiration_from_unix_seconds": 1700000000}]

``expiration_from_unix_seconds`` is an absolute instant. Entries written by
older versions don't carry it and never expire.
"""
import json
import os
import threading
from contextlib import suppress
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .logger import get_logger

logger = get_logger()


class CacheEntry(BaseModel):
    """An uploaded artwork URL for one media item."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    url: str
    expires_at: Optional[int] = Field(default=None, alias="expiration_from_unix_seconds", ge=0)

    def is_expired(self, now: int) -> bool:
        """An entry expiring exactly at ``now`` is still valid."""
        return self.expires_at is not None and self.expires_at < now

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


_ENTRIES = TypeAdapter(List[CacheEntry])


def find(entries: Sequence[CacheEntry], item_id: str) -> Optional[Tuple[int, CacheEntry]]:
    """Return (index, entry) for the first entry with ``item_id``, or None."""
    for index, entry in enumerate(entries):
        if entry.id == item_id:
            return index, entry
    return None


class UrlCache:
    """
    Loads and saves the URL cache file at ``path``.

    Nothing is held in memory between calls; every resolution reloads the file.
    ``lock`` serializes load/modify/save spans within one process only.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.lock = threading.RLock()

    def load(self) -> List[CacheEntry]:
        """
        Read all entries.

        A missing, unreadable or malformed file is replaced by an empty array.
        The old contents are not kept.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No image cache at {self.path}, creating one.")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read image cache {self.path}: {e}. Starting fresh.")
        else:
            try:
                return _ENTRIES.validate_json(raw)
            except ValidationError as e:
                logger.warning(f"Image cache {self.path} is corrupted ({e.error_count()} errors). Starting fresh.")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.save([])
        return []

    def save(self, entries: Sequence[CacheEntry]):
        """Overwrite the file with ``entries``. Write errors propagate; flushing is best effort."""
        payload = json.dumps([entry.to_json() for entry in entries])
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(payload)
            with suppress(OSError):
                f.flush()
                os.fsync(f.fileno())
