import io
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from PIL import Image

from . import __version__
from .config import ImagesConfig, JellyfinConfig
from .errors import ArtworkError
from .logger import get_logger

logger = get_logger()

TICKS_PER_SECOND = 10_000_000

# -------------------------
# Utilities
# -------------------------
_SESSION: Optional[requests.Session] = None

def get_session() -> requests.Session:
    """Create and return a cached requests.Session with retries."""
    global _SESSION
    if _SESSION is None:
        _SESSION = requests.Session()
        retry_strategy = Retry(total=3, backoff_factor=1, status_forcelist=[429, 500, 502, 503, 504])
        adapter = HTTPAdapter(max_retries=retry_strategy)
        _SESSION.mount("http://", adapter)
        _SESSION.mount("https://", adapter)
    return _SESSION

def _ticks_to_seconds(ticks: Any) -> Optional[float]:
    try:
        seconds = int(ticks) / TICKS_PER_SECOND
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None

# -------------------------
# Data Model
# -------------------------
@dataclass(slots=True)
class MediaItem:
    item_id: str
    name: str
    media_type: str
    artists: List[str] = field(default_factory=list)
    album: Optional[str] = None
    album_id: Optional[str] = None
    series_name: Optional[str] = None
    series_id: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    year: Optional[int] = None
    duration: Optional[float] = None
    position: Optional[float] = None
    paused: bool = False

    @classmethod
    def from_session(cls, session: Optional[dict]) -> Optional["MediaItem"]:
        """Builds an item from a Jellyfin session's NowPlayingItem and PlayState."""
        if not session:
            return None

        item = session.get("NowPlayingItem")
        if not isinstance(item, dict) or not item.get("Id"):
            return None

        play_state = session.get("PlayState") or {}
        duration = _ticks_to_seconds(item.get("RunTimeTicks"))

        return cls(
            item_id=item["Id"],
            name=item.get("Name") or "",
            media_type=item.get("Type") or "Unknown",
            artists=[a.strip() for a in item.get("Artists") or [] if a and a.strip()],
            album=item.get("Album"),
            album_id=item.get("AlbumId"),
            series_name=item.get("SeriesName"),
            series_id=item.get("SeriesId"),
            season=item.get("ParentIndexNumber"),
            episode=item.get("IndexNumber"),
            year=item.get("ProductionYear"),
            duration=duration if duration else None,
            position=_ticks_to_seconds(play_state.get("PositionTicks")),
            paused=bool(play_state.get("IsPaused", False)),
        )

    @property
    def image_item_id(self) -> str:
        """Id of the item whose Primary image represents this one."""
        if self.media_type == "Audio" and self.album_id:
            return self.album_id
        if self.media_type == "Episode" and self.series_id:
            return self.series_id
        return self.item_id

    def key(self) -> Tuple[str, bool]:
        """Unique key for change detection."""
        return (self.item_id, self.paused)


# -------------------------
# Client Class
# -------------------------
class JellyfinClient:
    """Handles communication with Jellyfin."""

    def __init__(self, jf_config: JellyfinConfig, img_config: ImagesConfig):
        self.jf_config = jf_config
        self.img_config = img_config
        self.headers = {
            "Authorization": f'MediaBrowser Client="JellyRPC", Version="{__version__}", Token="{jf_config.api_key}"',
        }
        self.session = get_session()
        if jf_config.self_signed_cert:
            self.session.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def _url(self, endpoint: str) -> str:
        return f"{self.jf_config.base_url}{endpoint}"

    def _get(self, endpoint: str, timeout: int = 5) -> requests.Response:
        r = self.session.get(self._url(endpoint), headers=self.headers, timeout=timeout)
        r.raise_for_status()
        return r

    def get_sessions(self) -> List[Dict[str, Any]]:
        return self._get("Sessions").json()

    def get_now_playing(self) -> Optional[MediaItem]:
        """Polls Jellyfin for the first configured user's current item."""
        try:
            sessions = self.get_sessions()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Jellyfin request failed for Sessions: {e}")
            return None

        if not isinstance(sessions, list):
            logger.error(f"Unexpected Sessions response from Jellyfin: {type(sessions).__name__}")
            return None

        blacklist = {t.lower() for t in self.jf_config.blacklist.media_types}
        for session in sessions:
            if not isinstance(session, dict) or session.get("UserName") not in self.jf_config.username:
                continue
            item = MediaItem.from_session(session)
            if item is None:
                continue
            if item.media_type.lower() in blacklist:
                logger.debug(f"Skipping blacklisted {item.media_type}: {item.name}")
                continue
            if self._in_blacklisted_library(item):
                logger.debug(f"Skipping {item.name} from a blacklisted library")
                continue
            return item
        return None

    def get_library_names(self, item: MediaItem) -> List[str]:
        """Names of the libraries (collection folders) that contain the item."""
        ancestors = self._get(f"Items/{item.item_id}/Ancestors").json()
        if not isinstance(ancestors, list):
            return []
        return [a.get("Name", "") for a in ancestors if isinstance(a, dict) and a.get("Type") == "CollectionFolder"]

    def _in_blacklisted_library(self, item: MediaItem) -> bool:
        libraries = {name.lower() for name in self.jf_config.blacklist.libraries}
        if not libraries:
            return False
        try:
            names = self.get_library_names(item)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Could not look up libraries for {item.name}: {e}")
            return False
        return any(name.lower() in libraries for name in names)

    def get_image_url(self, item: MediaItem) -> str:
        """Direct Jellyfin URL of the item's Primary image."""
        return self._url(f"Items/{item.image_item_id}/Images/Primary")

    def fetch_artwork(self, item: MediaItem) -> bytes:
        """Downloads and optimizes the item's artwork. HTTP errors propagate."""
        r = self.session.get(self.get_image_url(item), headers=self.headers, timeout=8)
        r.raise_for_status()
        logger.debug(f"Original image size: {len(r.content) / (1024*1024):.2f}MB")
        return self._optimize_image(r.content)

    def _optimize_image(self, image_bytes: bytes) -> bytes:
        """Resizes and compresses an image using Pillow."""
        if not image_bytes:
            raise ArtworkError("Jellyfin returned an empty image.")
        try:
            img = Image.open(io.BytesIO(image_bytes))
            if img.mode != 'RGB': img = img.convert('RGB')

            max_size = (self.img_config.max_size, self.img_config.max_size)
            if img.width > max_size[0] or img.height > max_size[1]:
                img.thumbnail(max_size, Image.Resampling.LANCZOS)
                logger.debug(f"Resized image to {img.width}x{img.height}")

            output_buffer = io.BytesIO()
            img.save(output_buffer, format="JPEG", quality=self.img_config.jpeg_quality, optimize=True)
            optimized_bytes = output_buffer.getvalue()
        except Exception as e:
            raise ArtworkError(f"Error optimizing image: {e}") from e

        if len(optimized_bytes) > self.img_config.max_file_bytes:
            raise ArtworkError(f"Optimized image is still too large ({len(optimized_bytes)/(1024*1024):.2f}MB).")
        return optimized_bytes
