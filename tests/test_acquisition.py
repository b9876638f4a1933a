"""Tests for image fetch, decode, 16-bit reduction and banding."""
import numpy as np
import pytest
import requests
from PIL import Image

from chapter_ocr.acquisition.chunker import encode_band_png, iter_bands
from chapter_ocr.acquisition.image_loader import (
    decode_image,
    downsample_to_8bit,
    fetch_image_bytes,
    is_avif,
)
from chapter_ocr.pipeline.stitcher import stitch_result
from chapter_ocr.models.ocr_models import BoundingBox, OcrResult
from chapter_ocr.support.exceptions import DecodeError, FetchError

from conftest import make_png, make_png_16bit


class FakeResponse:
    def __init__(self, content=b"", status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class TestFetch:
    def test_sends_basic_auth(self, monkeypatch):
        seen = {}

        def fake_get(url, auth=None, timeout=None):
            seen.update(url=url, auth=auth, timeout=timeout)
            return FakeResponse(b"image-bytes")

        monkeypatch.setattr(requests, "get", fake_get)

        data = fetch_image_bytes("http://host/p.png", user="reader", password="secret", timeout=5)

        assert data == b"image-bytes"
        assert seen["auth"].username == "reader"
        assert seen["auth"].password == "secret"
        assert seen["timeout"] == 5

    def test_no_auth_without_user(self, monkeypatch):
        seen = {}

        def fake_get(url, auth=None, timeout=None):
            seen["auth"] = auth
            return FakeResponse(b"x")

        monkeypatch.setattr(requests, "get", fake_get)
        fetch_image_bytes("http://host/p.png")

        assert seen["auth"] is None

    def test_http_error_status(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, auth=None, timeout=None: FakeResponse(status_code=404))

        with pytest.raises(FetchError, match="404"):
            fetch_image_bytes("http://host/missing.png")

    def test_timeout(self, monkeypatch):
        def fake_get(url, auth=None, timeout=None):
            raise requests.Timeout("slow")

        monkeypatch.setattr(requests, "get", fake_get)

        with pytest.raises(FetchError):
            fetch_image_bytes("http://host/slow.png")


class TestDecode:
    def test_png_rgb(self):
        image = decode_image(make_png(30, 20))
        assert image.size == (30, 20)
        assert image.mode == "RGB"

    def test_sixteen_bit_png_keeps_high_byte(self):
        image = decode_image(make_png_16bit(value=0x1234))
        assert image.mode == "L"
        assert image.getpixel((0, 0)) == 0x12

    def test_palette_converted(self):
        import io
        buf = io.BytesIO()
        Image.new("P", (4, 4)).save(buf, format="PNG")
        assert decode_image(buf.getvalue()).mode in ("RGB", "RGBA")

    @pytest.mark.parametrize("data", [b"", b"definitely not an image"])
    def test_garbage_raises(self, data):
        with pytest.raises(DecodeError):
            decode_image(data)

    def test_avif_sniffing(self):
        header = (24).to_bytes(4, "big") + b"ftyp" + b"avif" + b"\x00\x00\x00\x00" + b"mif1miaf"
        assert is_avif(header)
        compatible_only = (24).to_bytes(4, "big") + b"ftyp" + b"mif1" + b"\x00\x00\x00\x00" + b"avifmiaf"
        assert is_avif(compatible_only)
        heic = (24).to_bytes(4, "big") + b"ftyp" + b"heic" + b"\x00\x00\x00\x00" + b"mif1heic"
        assert not is_avif(heic)
        assert not is_avif(make_png())


class TestDownsample:
    def test_high_byte(self):
        pixels = np.array([[0, 255, 256, 0x1234, 65535]], dtype=np.uint16)
        assert downsample_to_8bit(pixels, 16).tolist() == [[0, 0, 1, 0x12, 255]]

    def test_ten_bit(self):
        pixels = np.array([[0, 512, 1023]], dtype=np.uint16)
        assert downsample_to_8bit(pixels, 10).tolist() == [[0, 128, 255]]

    def test_uint8_passthrough(self):
        pixels = np.zeros((2, 2), dtype=np.uint8)
        assert downsample_to_8bit(pixels) is pixels

    def test_float_rejected(self):
        with pytest.raises(DecodeError):
            downsample_to_8bit(np.zeros((2, 2), dtype=np.float32))


class TestBanding:
    def test_bands_cover_image(self):
        image = Image.new("RGB", (100, 6500))
        bands = list(iter_bands(image, 3000))

        assert [b.global_y for b in bands] == [0, 3000, 6000]
        assert [b.height for b in bands] == [3000, 3000, 500]
        assert all(b.width == 100 for b in bands)
        assert bands[2].image.size == (100, 500)

    def test_short_image_single_band(self):
        bands = list(iter_bands(Image.new("RGB", (50, 40)), 3000))
        assert len(bands) == 1
        assert bands[0].height == 40

    def test_band_encodes_as_png(self):
        band = next(iter_bands(Image.new("RGB", (10, 10)), 3000))
        assert encode_band_png(band).startswith(b"\x89PNG")

    def test_invalid_height(self):
        with pytest.raises(ValueError):
            list(iter_bands(Image.new("RGB", (10, 10)), 0))


def test_stitch_maps_band_pixels_to_full_image():
    result = OcrResult(text="a", tight_bounding_box=BoundingBox(100, 200, 50, 60, rotation=0.2))

    stitched = stitch_result(result, global_y=3000, full_width=1000, full_height=6000)

    box = stitched.tight_bounding_box
    assert (box.x, box.y, box.width, box.height) == pytest.approx((0.1, 3200 / 6000, 0.05, 0.01))
    assert box.rotation == 0.2
    assert stitched.text == "a"
