import time
from typing import Optional

import requests

from .cache import UrlCache
from .client import JellyfinClient, MediaItem
from .config import Settings
from .discord import DiscordPresence
from .errors import JellyRPCError
from .imgbb import ImgBBClient
from .logger import get_logger
from .resolver import get_image

logger = get_logger()

# -------------------------
# Artwork
# -------------------------
def build_uploader(settings: Settings) -> Optional[ImgBBClient]:
    """ImgBB client when ImgBB images are enabled and a token is configured."""
    if not (settings.images.enable_images and settings.images.imgbb_images):
        return None
    if not settings.imgbb.api_token:
        logger.warning("imgbb_images is enabled but no ImgBB api_token is set. Using the default image.")
        return None
    return ImgBBClient(settings.imgbb.api_token, settings.imgbb.expiration)

def resolve_image(settings: Settings, client: JellyfinClient, cache: UrlCache,
                  uploader: Optional[ImgBBClient], item: MediaItem) -> Optional[str]:
    """Picks the large image for an item, falling back to its media type's image or the default."""
    images = settings.images
    if not images.enable_images:
        return images.fallback_image(item.media_type)

    if not images.imgbb_images:
        return client.get_image_url(item)

    if uploader is None:
        return images.fallback_image(item.media_type)

    try:
        return get_image(item.item_id, lambda: client.fetch_artwork(item), cache, uploader)
    except (JellyRPCError, requests.RequestException, OSError) as e:
        logger.warning(f"Could not get ImgBB image for {item.name}: {e}")
        return images.fallback_image(item.media_type)

# -------------------------
# Main Execution
# -------------------------
def main_loop(settings: Settings):
    """Initializes clients and runs the main polling loop."""

    # 1. Initialization
    client = JellyfinClient(settings.jellyfin, settings.images)
    cache = UrlCache(settings.urls_location)
    uploader = build_uploader(settings)
    last_item_key = None
    poll_interval = settings.poll_interval

    # 2. Main Loop
    try:
        with DiscordPresence(settings.discord, settings.images, settings.jellyfin) as rpc:
            while True:
                item = client.get_now_playing()

                if not item:
                    if last_item_key is not None:
                        rpc.clear()
                        logger.info("Nothing playing. Clearing RPC.")
                    last_item_key = None
                    time.sleep(poll_interval)
                    continue

                item_key = item.key()
                if item_key != last_item_key:
                    logger.info(f"Now playing: {item.name} ({item.media_type})")
                    image_url = resolve_image(settings, client, cache, uploader, item)
                    rpc.update(item, image_url)
                    last_item_key = item_key

                time.sleep(poll_interval)

    except ConnectionError:
        logger.critical("Fatal error connecting to Discord RPC. Exiting.")
    except KeyboardInterrupt:
        logger.info("Exiting gracefully...")
