"""Tests for image compression and data URI payloads."""

import base64
from io import BytesIO
from unittest.mock import patch

import pytest
from PIL import Image

from catalog_admin import image_codec
from catalog_admin.config import MAX_IMAGE_BYTES
from catalog_admin.image_codec import (
    ImageLoadError,
    build_payload,
    compress_image,
    decode_payload,
    downscale_image,
    encode_image,
    open_image,
    split_payload,
)


class TestDownscaleImage:
    """Tests for the aspect-preserving resize."""

    def test_landscape_pins_width(self):
        img = Image.new("RGB", (400, 300))
        assert downscale_image(img, 200).size == (200, 150)

    def test_portrait_pins_height(self):
        img = Image.new("RGB", (300, 400))
        assert downscale_image(img, 200).size == (150, 200)

    def test_square_uses_max_dimension_for_both_sides(self):
        img = Image.new("RGB", (100, 100))
        assert downscale_image(img, 50).size == (50, 50)

    def test_extreme_aspect_ratio_never_reaches_zero(self):
        """A side that rounds to zero is clamped to one pixel."""
        img = Image.new("RGB", (1000, 1))
        assert downscale_image(img, 10).size == (10, 1)


class TestCompressImage:
    """Tests for the quality/downscale ladder."""

    def test_small_image_fits_on_first_attempt(self, small_image):
        data = compress_image(small_image)

        assert data is not None
        assert data[:2] == b"\xff\xd8", "Output should be a JPEG"
        assert len(data) <= MAX_IMAGE_BYTES

    def test_result_never_exceeds_limit(self, noise_image):
        data = compress_image(noise_image, size_limit=60_000)

        assert data is not None
        assert len(data) <= 60_000

    def test_unreachable_limit_returns_none(self, noise_image):
        assert compress_image(noise_image, size_limit=10) is None

    def test_at_most_nine_attempts(self, noise_image):
        """Quality runs 90% down to 10% and then the loop gives up."""
        qualities = []
        real_encode = image_codec._encode_jpeg

        def recording_encode(img, quality):
            qualities.append(quality)
            return real_encode(img, quality)

        with patch.object(image_codec, "_encode_jpeg", side_effect=recording_encode):
            assert compress_image(noise_image, size_limit=1) is None

        assert qualities == [90, 80, 70, 60, 50, 40, 30, 20, 10]

    def test_downscale_in_lockstep_with_quality(self, noise_image):
        """Every miss shrinks the longest side to 80%."""
        sizes = []

        def oversized(img, quality):
            sizes.append(img.size)
            return b"x" * 100

        with patch.object(image_codec, "_encode_jpeg", side_effect=oversized):
            compress_image(noise_image, size_limit=10)

        assert sizes[:3] == [(400, 300), (320, 240), (256, 192)]
        widths = [w for w, _ in sizes]
        assert widths == sorted(widths, reverse=True)

    def test_stops_at_first_attempt_within_limit(self, small_image):
        calls = []

        def shrinking(img, quality):
            calls.append(quality)
            return b"x" * (1000 if quality > 70 else 10)

        with patch.object(image_codec, "_encode_jpeg", side_effect=shrinking):
            data = compress_image(small_image, size_limit=100)

        assert data == b"x" * 10
        assert calls == [90, 80, 70]

    def test_rgba_is_flattened_for_jpeg(self):
        img = Image.new("RGBA", (32, 32), (0, 0, 255, 128))

        data = compress_image(img)

        assert data is not None
        assert Image.open(BytesIO(data)).mode == "RGB"

    def test_palette_image_is_accepted(self):
        img = Image.new("P", (32, 32))
        assert compress_image(img) is not None


class TestEncodeImage:
    """Tests for the compress-and-wrap entry point."""

    def test_returns_jpeg_payload(self, small_image):
        payload, mime_type = encode_image(small_image)

        assert mime_type == "image/jpeg"
        assert payload.startswith("data:image/jpeg;base64,")
        decoded = decode_payload(payload)
        assert decoded is not None
        assert len(decoded) <= MAX_IMAGE_BYTES

    def test_failure_returns_no_payload(self, noise_image):
        assert encode_image(noise_image, size_limit=10) == (None, None)


class TestDecodePayload:
    """Tests for payload decoding; it never raises."""

    @pytest.mark.parametrize("mime_type", ["image/jpeg", "image/png", "image/webp"])
    def test_allow_listed_types_decode(self, mime_type):
        payload = f"data:{mime_type};base64," + base64.b64encode(b"abc").decode()
        assert decode_payload(payload) == b"abc"

    @pytest.mark.parametrize(
        "payload",
        [
            "",
            None,
            "data:image/gif;base64,YWJj",
            "data:text/plain;base64,YWJj",
            "YWJj",
            "data:image/png;base64,not*base64!",
            "https://cdn.example.com/mug.png",
        ],
    )
    def test_unusable_payloads_are_absent(self, payload):
        assert decode_payload(payload) is None

    def test_custom_allow_list(self):
        payload = "data:image/jpeg;base64,YWJj"
        assert decode_payload(payload, mime_types=("image/png",)) is None

    def test_decode_then_rewrap_is_identical(self, png_bytes):
        payload = build_payload(png_bytes, "image/png")

        mime_type, data = split_payload(payload)
        rewrapped = build_payload(data, mime_type)

        assert data == png_bytes
        assert rewrapped == payload
        assert decode_payload(rewrapped) == png_bytes

    def test_split_payload_reports_mime_type(self):
        assert split_payload("data:image/webp;base64,YWJj") == ("image/webp", b"abc")


class TestBuildPayload:
    def test_rejects_unlisted_mime_type(self):
        with pytest.raises(ValueError):
            build_payload(b"abc", "image/gif")


class TestOpenImage:
    def test_opens_bytes(self, png_bytes):
        img = open_image(png_bytes)
        assert img.size == (64, 48)

    def test_opens_path(self, tmp_path, small_image):
        path = tmp_path / "photo.png"
        small_image.save(path)
        assert open_image(path).size == (64, 48)

    def test_garbage_raises_image_load_error(self):
        with pytest.raises(ImageLoadError):
            open_image(b"definitely not an image")

    def test_missing_file_raises_image_load_error(self, tmp_path):
        with pytest.raises(ImageLoadError):
            open_image(tmp_path / "missing.jpg")

    def test_decompression_bomb_raises_image_load_error(self, png_bytes, monkeypatch):
        # 64x48 is over twice this limit, which Pillow refuses outright
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ImageLoadError, match="too large"):
            open_image(png_bytes)
