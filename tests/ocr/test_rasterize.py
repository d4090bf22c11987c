"""Tests for document rasterization."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from idmask.errors import DecodeError, UnsupportedFormatError
from idmask.ocr import rasterize
from idmask.ocr.rasterize import ensure_supported_format, rasterize_document


def test_png_is_decoded_at_original_size(image_bytes):
    canvas = rasterize_document(image_bytes(size=(400, 250)), "image/png")

    assert canvas.size == (400, 250)
    assert canvas.mode == "RGB"


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        ((3200, 1600), (1600, 800)),
        ((1000, 2400), (666, 1600)),
        ((1600, 1200), (1600, 1200)),
    ],
)
def test_large_images_are_downscaled_to_max_dimension(image_bytes, size, expected):
    canvas = rasterize_document(image_bytes(size=size, fmt="JPEG"), "image/jpeg")

    assert canvas.size == expected


def test_max_dimension_is_configurable(image_bytes):
    canvas = rasterize_document(image_bytes(size=(800, 400)), "image/png", max_dimension=200)

    assert canvas.size == (200, 100)


def test_exif_orientation_is_applied():
    image = Image.new("RGB", (300, 200), color=(10, 20, 30))
    exif = image.getexif()
    exif[0x0112] = 6
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", exif=exif.tobytes())

    canvas = rasterize_document(buffer.getvalue(), "image/jpeg")

    assert canvas.size == (200, 300)


def test_alpha_channel_is_flattened_to_rgb():
    buffer = io.BytesIO()
    Image.new("RGBA", (50, 40), color=(0, 0, 0, 0)).save(buffer, format="PNG")

    canvas = rasterize_document(buffer.getvalue(), "image/png")

    assert canvas.mode == "RGB"


def test_content_type_parameters_and_case_are_ignored(image_bytes):
    assert ensure_supported_format("IMAGE/PNG; charset=binary") == "image/png"
    assert rasterize_document(image_bytes(), " Image/PNG ").size == (400, 250)


@pytest.mark.parametrize("content_type", ["image/gif", "text/plain", "", None])
def test_unsupported_content_types_are_rejected(image_bytes, content_type):
    with pytest.raises(UnsupportedFormatError) as excinfo:
        rasterize_document(image_bytes(), content_type)

    assert excinfo.value.content_type == content_type
    assert "JPEG, PNG, or PDF" in str(excinfo.value)


def test_corrupt_image_raises_decode_error():
    with pytest.raises(DecodeError):
        rasterize_document(b"definitely not an image", "image/png")


def test_empty_upload_raises_decode_error():
    with pytest.raises(DecodeError):
        rasterize_document(b"", "image/jpeg")


def test_pdf_first_page_is_rendered_at_scale(monkeypatch):
    calls = []

    def fake_convert(content, **kwargs):
        calls.append(kwargs)
        return [Image.new("L", (918, 1188), color=255)]

    monkeypatch.setattr(rasterize, "convert_from_bytes", fake_convert)

    canvas = rasterize_document(b"%PDF-1.4 fake", "application/pdf")

    assert canvas.size == (918, 1188)
    assert canvas.mode == "RGB"
    assert calls[0]["dpi"] == 108
    assert calls[0]["first_page"] == 1
    assert calls[0]["last_page"] == 1


def test_pdf_scale_is_configurable(monkeypatch):
    calls = []

    def fake_convert(content, **kwargs):
        calls.append(kwargs)
        return [Image.new("RGB", (10, 10))]

    monkeypatch.setattr(rasterize, "convert_from_bytes", fake_convert)

    rasterize_document(b"%PDF-1.4 fake", "application/pdf", pdf_scale=2.0)

    assert calls[0]["dpi"] == 144


def test_pdf_without_pages_raises_decode_error(monkeypatch):
    monkeypatch.setattr(rasterize, "convert_from_bytes", lambda content, **kwargs: [])

    with pytest.raises(DecodeError, match="any pages"):
        rasterize_document(b"%PDF-1.4 fake", "application/pdf")


def test_pdf_conversion_failure_raises_decode_error(monkeypatch):
    def broken(content, **kwargs):
        raise RuntimeError("poppler missing")

    monkeypatch.setattr(rasterize, "convert_from_bytes", broken)

    with pytest.raises(DecodeError, match="Unable to render PDF"):
        rasterize_document(b"%PDF-1.4 fake", "application/pdf")
