import os
import sys
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, HttpUrl, field_validator

from . import __version__
from .errors import ConfigError
from .logger import get_logger

logger = get_logger()

APP_DIR_NAME = "jellyrpc"


def get_config_dir() -> Path:
    """Per-user config directory: %APPDATA%\\jellyrpc on Windows, $XDG_CONFIG_HOME/jellyrpc elsewhere."""
    if sys.platform == "win32":
        return Path(os.environ["APPDATA"]) / APP_DIR_NAME
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / APP_DIR_NAME


def get_config_path() -> Path:
    return get_config_dir() / "config.yaml"


def get_urls_path() -> Path:
    """Default location of the ImgBB URL cache."""
    return get_config_dir() / "urls.json"


class BlacklistConfig(BaseModel):
    """Media types and libraries that are never shown."""
    media_types: List[str] = Field(default_factory=list)
    libraries: List[str] = Field(default_factory=list)


class JellyfinConfig(BaseModel):
    """Jellyfin Connection Settings."""
    url: HttpUrl
    api_key: Optional[str] = None  # may come from a key file instead
    username: List[str]
    self_signed_cert: bool = False
    blacklist: BlacklistConfig = Field(default_factory=BlacklistConfig)
    show_simple: bool = False  # episode title only, no season/episode numbers
    append_prefix: bool = False  # zero-pad season/episode numbers below 10
    add_divider: bool = False  # "S1 - E2" instead of "S1E2"

    @field_validator("username", mode="before")
    @classmethod
    def _split_usernames(cls, value: Union[str, List[str]]):
        if isinstance(value, str):
            return [u.strip() for u in value.split(",") if u.strip()]
        return value

    @property
    def base_url(self) -> str:
        return str(self.url).rstrip("/") + "/"


class ButtonConfig(BaseModel):
    """A link button shown under the status."""
    name: str
    url: HttpUrl


class DiscordConfig(BaseModel):
    """Discord Application Settings."""
    application_id: str
    buttons: List[ButtonConfig] = Field(default_factory=list, max_length=2)
    show_paused: bool = True
    image_text: str = "JellyRPC v{version}"

    @property
    def large_text(self) -> str:
        return self.image_text.replace("{version}", __version__)


class ImgBBConfig(BaseModel):
    """ImgBB Upload Settings."""
    api_token: Optional[str] = None
    expiration: Optional[int] = Field(default=None, ge=60, le=15552000)  # seconds


class ImagesConfig(BaseModel):
    """Artwork Settings."""
    default_image: Optional[str] = None
    episode_image: Optional[str] = None
    movie_image: Optional[str] = None
    tv_image: Optional[str] = None
    music_image: Optional[str] = None
    audio_book_image: Optional[str] = None
    book_image: Optional[str] = None
    pause_icon_image: Optional[str] = None
    enable_images: bool = False
    imgbb_images: bool = False
    max_size: int = 512
    jpeg_quality: int = 85
    max_file_bytes: int = 33554432  # 32MB, the ImgBB limit

    def fallback_image(self, media_type: str) -> Optional[str]:
        """Per-media-type override, else the default image."""
        override = {
            "Episode": self.episode_image,
            "Movie": self.movie_image,
            "TvChannel": self.tv_image,
            "Audio": self.music_image,
            "AudioBook": self.audio_book_image,
            "Book": self.book_image,
        }.get(media_type)
        return override or self.default_image


class Settings(BaseModel):
    """Master configuration model."""
    jellyfin: JellyfinConfig
    discord: DiscordConfig
    imgbb: ImgBBConfig = Field(default_factory=ImgBBConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    general: dict = Field(default_factory=dict)

    @property
    def poll_interval(self) -> int:
        return self.general.get("poll_interval_seconds", 5)

    @property
    def urls_location(self) -> Path:
        location = self.general.get("urls_location")
        return Path(location) if location else get_urls_path()


def _read_key_file(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ConfigError(f"Could not read key file {path}: {e}") from e


def load_config(path: Optional[Union[str, Path]] = None,
                jellyfin_key_path: Optional[str] = None,
                imgbb_key_path: Optional[str] = None) -> Settings:
    """
    Loads and validates configuration from a YAML file.

    Keys read from ``jellyfin_key_path``/``imgbb_key_path`` replace the ones in the file.
    """
    path = Path(path) if path else get_config_path()
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found at: {path}. Use config.yaml.example to create one.")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    settings = Settings(**data)

    if jellyfin_key_path:
        if settings.jellyfin.api_key:
            logger.warning("Overwriting Jellyfin key from config!")
        settings.jellyfin.api_key = _read_key_file(jellyfin_key_path)

    if imgbb_key_path:
        if settings.imgbb.api_token:
            logger.warning("Overwriting ImgBB key from config!")
        settings.imgbb.api_token = _read_key_file(imgbb_key_path)

    if not settings.jellyfin.api_key:
        raise ConfigError("Jellyfin api_key is missing. Set it in the config or pass --jellyfin-key-file.")

    logger.debug(f"Config loaded from {path}")
    return settings
