"""Exception types raised by JellyRPC."""


class JellyRPCError(Exception):
    """Base class for JellyRPC errors."""


class ConfigError(JellyRPCError):
    """Configuration is missing a required value or a key file can't be read."""


class UploadError(JellyRPCError):
    """ImgBB upload failed or returned an unusable response."""


class InvalidUrlError(JellyRPCError, ValueError):
    """A stored or returned image URL is not an absolute http(s) URL."""


class ArtworkError(JellyRPCError):
    """Artwork could not be prepared for upload."""
