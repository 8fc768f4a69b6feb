"""
ImgBB upload client.
"""
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from .errors import InvalidUrlError, UploadError
from .logger import get_logger

logger = get_logger()

IMGBB_UPLOAD_URL = "https://api.imgbb.com/1/upload"


def ensure_url(value: Any) -> str:
    """Return ``value`` if it is an absolute http(s) URL, else raise InvalidUrlError."""
    if not isinstance(value, str):
        raise InvalidUrlError(f"Expected a URL string, got {type(value).__name__}")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidUrlError(f"Not an absolute http(s) URL: {value!r}")
    return value


class ImgBBClient:
    """Uploads raw image bytes to ImgBB and returns the hosted URL."""

    def __init__(self, api_token: str, expiration: Optional[int] = None,
                 session: Optional[requests.Session] = None, timeout: int = 30):
        self.api_token = api_token
        self.expiration = expiration
        # Plain session: uploads are never retried.
        self.session = session or requests.Session()
        self.timeout = timeout

    def _params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"key": self.api_token}
        if self.expiration:
            params["expiration"] = self.expiration
        return params

    def upload(self, image_bytes: bytes) -> str:
        """
        Upload ``image_bytes`` as multipart field ``image``.

        Raises:
            UploadError: network failure, non-2xx status or a response without a usable ``data.url``
        """
        files = {"image": ("jellyfin", image_bytes)}
        try:
            r = self.session.post(IMGBB_UPLOAD_URL, params=self._params(), files=files, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise UploadError(f"ImgBB upload failed: {e}") from e

        try:
            payload = r.json()
        except ValueError as e:
            raise UploadError("ImgBB returned a non-JSON response") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or "url" not in data:
            raise UploadError("ImgBB response is missing data.url")

        try:
            url = ensure_url(data["url"])
        except InvalidUrlError as e:
            raise UploadError(f"ImgBB returned an invalid URL: {e}") from e

        logger.debug(f"Uploaded {len(image_bytes)} bytes to ImgBB: {url}")
        return url
