"""Jellyfin → Discord Rich Presence with ImgBB artwork caching."""

__version__ = "1.0.0"
