"""
Configuration validation and connectivity testing for JellyRPC.
"""
from typing import Tuple, Optional
import requests

from .client import JellyfinClient
from .config import Settings
from .logger import get_logger

logger = get_logger()

def validate_jellyfin_connection(settings: Settings) -> Tuple[bool, Optional[str]]:
    """
    Test connectivity to the Jellyfin server.

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    client = JellyfinClient(settings.jellyfin, settings.images)
    try:
        client.get_sessions()
    except requests.exceptions.ConnectionError:
        error = "Cannot connect to Jellyfin server. Check jellyfin.url in config."
    except requests.exceptions.Timeout:
        error = "Jellyfin server connection timed out."
    except requests.exceptions.HTTPError as e:
        error = f"Jellyfin returned status {e.response.status_code if e.response is not None else 'unknown'}"
    except (requests.RequestException, ValueError) as e:
        error = f"Jellyfin validation failed: {e}"
    else:
        logger.info("✓ Jellyfin connection successful")
        return True, None

    logger.error(f"✗ {error}")
    return False, error

def validate_discord_client_id(client_id: str) -> Tuple[bool, Optional[str]]:
    """
    Validate Discord application ID format.

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not client_id:
        error = "Discord application ID is empty"
        logger.error(f"✗ {error}")
        return False, error

    # Discord IDs should be numeric strings
    if not client_id.isdigit():
        error = f"Discord application ID should be numeric, got: {client_id}"
        logger.error(f"✗ {error}")
        return False, error

    # Discord snowflakes are typically 17-20 digits
    if len(client_id) < 17 or len(client_id) > 20:
        logger.warning(f"⚠ Discord application ID has unusual length: {len(client_id)} digits")

    logger.info("✓ Discord application ID format valid")
    return True, None

def validate_imgbb_token(settings: Settings) -> Tuple[bool, Optional[str]]:
    """
    Check that an ImgBB token is present when ImgBB images are enabled.

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not (settings.images.enable_images and settings.images.imgbb_images):
        return True, None

    if not settings.imgbb.api_token:
        error = "images.imgbb_images is enabled but imgbb.api_token is empty"
        logger.error(f"✗ {error}")
        return False, error

    logger.info("✓ ImgBB token present")
    return True, None

def validate_configuration(settings: Settings) -> bool:
    """
    Validate all configuration settings and test connections.

    Returns:
        True if all validations pass, False otherwise
    """
    logger.info("Validating configuration...")

    results = [
        validate_discord_client_id(settings.discord.application_id),
        validate_imgbb_token(settings),
        validate_jellyfin_connection(settings),
    ]
    all_valid = all(ok for ok, _ in results)

    if all_valid:
        logger.info("✓ All configuration checks passed!")
    else:
        logger.error("✗ Configuration validation failed. Please check your config.yaml")

    return all_valid
