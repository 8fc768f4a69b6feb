import time
from typing import Dict, List, Optional, Tuple

from pypresence.presence import Presence
from pypresence.types import ActivityType, StatusDisplayType

from .client import MediaItem
from .config import DiscordConfig, ImagesConfig, JellyfinConfig
from .logger import get_logger

logger = get_logger()

# -------------------------
# Formatting
# -------------------------
def format_episode_number(season: int, episode: int, append_prefix: bool = False, add_divider: bool = False) -> str:
    """Season/episode label: S1E2, S01E02 with append_prefix, S1 - E2 with add_divider."""
    width = 2 if append_prefix else 0
    divider = " - " if add_divider else ""
    return f"S{season:0{width}}{divider}E{episode:0{width}}"

def format_details(item: MediaItem, jf_config: Optional[JellyfinConfig] = None) -> Tuple[str, str]:
    """Returns (details, state) lines for an item."""
    if item.media_type == "Audio":
        return item.name, ", ".join(item.artists) or "Unknown Artist"
    if item.media_type == "Episode":
        state = item.name
        if jf_config is None or not jf_config.show_simple:
            if item.season is not None and item.episode is not None:
                number = format_episode_number(
                    item.season, item.episode,
                    append_prefix=bool(jf_config and jf_config.append_prefix),
                    add_divider=bool(jf_config and jf_config.add_divider),
                )
                state = f"{number} {item.name}".strip()
        return item.series_name or item.name, state
    if item.media_type == "Movie":
        return item.name, str(item.year) if item.year else "Movie"
    return item.name, item.media_type

# -------------------------
# Discord RPC
# -------------------------
class DiscordPresence:
    """Context manager and updater for Discord RPC."""

    def __init__(self, discord_config: DiscordConfig, images_config: ImagesConfig,
                 jellyfin_config: Optional[JellyfinConfig] = None):
        self.discord_config = discord_config
        self.images_config = images_config
        self.jellyfin_config = jellyfin_config
        self.rpc = Presence(discord_config.application_id, pipe=0)
        self.is_connected = False
        self.last_rpc_details: Optional[Tuple] = None

    def __enter__(self):
        try:
            self.rpc.connect()
            self.is_connected = True
            logger.info("Connected to Discord RPC.")
        except Exception as e:
            logger.error(f"Failed to connect to Discord RPC: {e}")
            raise ConnectionError("Discord RPC connection failed.") from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.is_connected:
            self.clear()
            try:
                self.rpc.close()
            except Exception as e:
                logger.debug(f"Error closing Discord RPC: {e}")
            self.is_connected = False

    def _safe_text(self, text: Optional[str], fallback: str = "Jellyfin") -> str:
        """Ensures text is at least 2 visible characters long (Discord RPC requirement)."""
        text = text or fallback
        return text if len(text.strip()) >= 2 else text + "\u200B"

    def _timestamps(self, item: MediaItem) -> Tuple[Optional[int], Optional[int]]:
        if not item.duration or item.paused:
            return None, None
        now = time.time()
        start_ts = int(now - (item.position or 0))
        return start_ts, int(start_ts + item.duration)

    def _buttons(self) -> Optional[List[Dict[str, str]]]:
        buttons = [{"label": b.name, "url": str(b.url)} for b in self.discord_config.buttons]
        return buttons or None

    def update(self, item: MediaItem, image_url: Optional[str]):
        """Calculates timestamps and updates the Rich Presence."""
        if not self.is_connected:
            logger.warning("RPC not connected, skipping update.")
            return

        if item.paused and not self.discord_config.show_paused:
            self.clear()
            return

        details, state = format_details(item, self.jellyfin_config)
        details = self._safe_text(details, "Unknown Title")
        state = self._safe_text(state, "Jellyfin")
        final_image = image_url or self.images_config.fallback_image(item.media_type)
        small_image = self.images_config.pause_icon_image if item.paused else None
        start_ts, end_ts = self._timestamps(item)

        current_rpc_details = (details, state, final_image, small_image, start_ts, end_ts)
        if current_rpc_details == self.last_rpc_details:
            return  # Skip redundant updates

        activity_type = ActivityType.LISTENING if item.media_type == "Audio" else ActivityType.WATCHING
        self.rpc.update(
            activity_type=activity_type,
            status_display_type=StatusDisplayType.DETAILS,
            details=details,
            state=state,
            large_text=self._safe_text(item.album or self.discord_config.large_text),
            large_image=final_image,
            small_image=small_image,
            small_text="Paused" if small_image else None,
            start=start_ts,
            end=end_ts,
            buttons=self._buttons(),
        )
        logger.info(f"RPC Updated: {details} - {state}")
        self.last_rpc_details = current_rpc_details

    def clear(self):
        """Clears the RPC status."""
        if self.is_connected and self.last_rpc_details is not None:
            try:
                self.rpc.clear()
            except Exception as e:
                logger.debug(f"Error clearing Discord RPC: {e}")
        self.last_rpc_details = None
