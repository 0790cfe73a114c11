"""Unit tests for image payload helpers."""

import base64
import io

import pytest
from PIL import Image

from imagen.core.images import (
    decode_data_uri,
    extension_for,
    image_bytes_to_data_uri,
    sanitize_image_url,
)


class TestImageBytesToDataUri:
    def test_png(self, png_bytes):
        uri = image_bytes_to_data_uri(png_bytes)

        assert uri.startswith("data:image/png;base64,")
        assert base64.b64decode(uri.split(",", 1)[1]) == png_bytes

    def test_jpeg(self):
        buffer = io.BytesIO()
        Image.new("RGB", (4, 4)).save(buffer, format="JPEG")

        assert image_bytes_to_data_uri(buffer.getvalue()).startswith("data:image/jpeg;base64,")

    @pytest.mark.parametrize("raw", [b"", b"plain text", b"%PDF-1.4 not an image"])
    def test_rejects_non_images(self, raw):
        with pytest.raises(ValueError, match="not a supported image"):
            image_bytes_to_data_uri(raw)


class TestDecodeDataUri:
    def test_round_trip(self, png_bytes, png_data_uri):
        assert decode_data_uri(png_data_uri) == ("image/png", png_bytes)

    def test_missing_media_type_defaults_to_png(self):
        assert decode_data_uri("data:;base64,QUJD") == ("image/png", b"ABC")

    @pytest.mark.parametrize(
        "uri",
        ["https://cdn.test/a.png", "data:image/png,rawtext", "not a uri"],
    )
    def test_rejects_non_base64(self, uri):
        with pytest.raises(ValueError):
            decode_data_uri(uri)


class TestExtensionFor:
    @pytest.mark.parametrize(
        "media_type, extension",
        [
            ("image/png", "png"),
            ("image/jpeg", "jpg"),
            ("image/webp", "webp"),
            ("image/gif", "gif"),
            ("image/unknown", "png"),
        ],
    )
    def test_extensions(self, media_type, extension):
        assert extension_for(media_type) == extension


class TestSanitizeImageUrl:
    """Only data:image and https URLs reach an img tag."""

    def test_data_image_passes(self):
        assert sanitize_image_url("data:image/png;base64,AAAA") == "data:image/png;base64,AAAA"

    def test_https_quotes_are_encoded(self):
        assert sanitize_image_url("https://cdn.test/a\"b'c.png") == (
            "https://cdn.test/a%22b%27c.png"
        )

    @pytest.mark.parametrize(
        "url",
        [
            "javascript:alert(1)",
            "http://cdn.test/a.png",
            "data:text/html;base64,PHNjcmlwdD4=",
            "",
            None,
        ],
    )
    def test_unsafe_urls_blocked(self, url):
        assert sanitize_image_url(url) == ""
