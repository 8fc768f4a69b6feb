"""Tests for the ImgBB upload client."""

from unittest.mock import MagicMock

import pytest
import requests

from jellyrpc.errors import InvalidUrlError, UploadError
from jellyrpc.imgbb import IMGBB_UPLOAD_URL, ImgBBClient, ensure_url


def make_client(payload=None, expiration=600, **response_attrs):
    session = MagicMock()
    response = MagicMock()
    response.json.return_value = payload
    for name, value in response_attrs.items():
        setattr(response, name, value)
    session.post.return_value = response
    return ImgBBClient("imgbb-key", expiration=expiration, session=session), session


class TestUpload:
    """Tests for ImgBBClient.upload."""

    def test_success(self):
        """Returns data.url from the response."""
        client, _ = make_client({"data": {"url": "https://i.ibb.co/abc/cover.jpg"}})

        assert client.upload(b"jpeg-bytes") == "https://i.ibb.co/abc/cover.jpg"

    def test_request_shape(self):
        """Posts a multipart image part with key and expiration query params."""
        client, session = make_client({"data": {"url": "https://i.ibb.co/abc/cover.jpg"}})

        client.upload(b"jpeg-bytes")

        args, kwargs = session.post.call_args
        assert args == (IMGBB_UPLOAD_URL,)
        assert kwargs["params"] == {"key": "imgbb-key", "expiration": 600}
        assert kwargs["files"] == {"image": ("jellyfin", b"jpeg-bytes")}
        assert kwargs["timeout"] == 30

    def test_no_expiration_param_without_ttl(self):
        client, session = make_client({"data": {"url": "https://i.ibb.co/abc/cover.jpg"}}, expiration=None)

        client.upload(b"jpeg-bytes")

        assert session.post.call_args.kwargs["params"] == {"key": "imgbb-key"}

    def test_network_error(self):
        client, session = make_client()
        session.post.side_effect = requests.exceptions.ConnectionError("Connection refused")

        with pytest.raises(UploadError, match="Connection refused"):
            client.upload(b"jpeg-bytes")

    def test_http_error(self):
        client, _ = make_client(raise_for_status=MagicMock(side_effect=requests.exceptions.HTTPError("400 Bad Request")))

        with pytest.raises(UploadError, match="400"):
            client.upload(b"jpeg-bytes")

    def test_non_json_body(self):
        """An HTML body from a real requests.Response is reported as non-JSON."""
        client, session = make_client()
        response = requests.Response()
        response.status_code = 200
        response.encoding = "utf-8"
        response._content = b"<html>oops</html>"
        session.post.return_value = response

        with pytest.raises(UploadError, match="non-JSON"):
            client.upload(b"jpeg-bytes")

    @pytest.mark.parametrize(
        "payload",
        [
            {"success": False},
            {"data": None},
            {"data": {"display_url": "https://ibb.co/abc"}},
            ["not", "an", "object"],
        ],
    )
    def test_missing_data_url(self, payload):
        client, _ = make_client(payload)

        with pytest.raises(UploadError, match="data.url"):
            client.upload(b"jpeg-bytes")

    @pytest.mark.parametrize("url", ["not a url", "/relative/cover.jpg", 42])
    def test_invalid_data_url(self, url):
        client, _ = make_client({"data": {"url": url}})

        with pytest.raises(UploadError, match="invalid URL"):
            client.upload(b"jpeg-bytes")


class TestEnsureUrl:
    """Tests for ensure_url."""

    def test_accepts_https(self):
        assert ensure_url("https://i.ibb.co/abc/cover.jpg") == "https://i.ibb.co/abc/cover.jpg"

    @pytest.mark.parametrize("value", ["", "ftp://example.com/a.jpg", "https://", None])
    def test_rejects(self, value):
        with pytest.raises(InvalidUrlError):
            ensure_url(value)
