"""Turn uploaded JPEG, PNG, or PDF bytes into a bounded-size RGB canvas."""

from __future__ import annotations

import io
import logging
from typing import Optional

from pdf2image import convert_from_bytes
from PIL import Image, ImageOps, UnidentifiedImageError

from idmask.errors import DecodeError, UnsupportedFormatError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", PDF_CONTENT_TYPE})
DEFAULT_MAX_DIMENSION = 1600
DEFAULT_PDF_SCALE = 1.5
PDF_BASE_DPI = 72


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lower-case the MIME type and drop parameters such as ``; charset=``."""

    return (content_type or "").split(";", 1)[0].strip().lower()


def ensure_supported_format(content_type: Optional[str]) -> str:
    """Return the normalized MIME type or raise :class:`UnsupportedFormatError`."""

    normalized = normalize_content_type(content_type)
    if normalized not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFormatError(content_type)
    return normalized


def fit_within(image: Image.Image, max_dimension: int) -> Image.Image:
    """Downscale so the longer side equals ``max_dimension``; smaller images pass through."""

    width, height = image.size
    longest = max(width, height)
    if longest <= max_dimension:
        return image
    ratio = max_dimension / longest
    size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
    return image.resize(size, Image.Resampling.LANCZOS)


def _render_pdf_first_page(content: bytes, scale: float) -> Image.Image:
    dpi = int(PDF_BASE_DPI * scale)
    try:
        pages = convert_from_bytes(content, dpi=dpi, first_page=1, last_page=1, fmt="png")
    except Exception as exc:
        raise DecodeError(
            "Unable to render PDF. Ensure poppler utilities are installed and the file is intact."
        ) from exc
    if not pages:
        raise DecodeError("PDF does not contain any pages.")
    return pages[0]


def _decode_image(content: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise DecodeError("Unable to decode image content.") from exc
    return ImageOps.exif_transpose(image)


def rasterize_document(
    content: bytes,
    content_type: Optional[str],
    *,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    pdf_scale: float = DEFAULT_PDF_SCALE,
) -> Image.Image:
    """Decode ``content`` into an RGB canvas.

    PDFs contribute their first page only, rendered at ``pdf_scale`` (72 dpi
    base). Images honour EXIF orientation and are downscaled when their longer
    side exceeds ``max_dimension``. PDF renders are not downscaled.
    """

    normalized = ensure_supported_format(content_type)
    if not content:
        raise DecodeError("Uploaded document is empty.")

    if normalized == PDF_CONTENT_TYPE:
        canvas = _render_pdf_first_page(content, pdf_scale).convert("RGB")
    else:
        canvas = fit_within(_decode_image(content).convert("RGB"), max_dimension)

    logger.debug(
        "Rasterized document content_type=%s size=%sx%s",
        normalized,
        canvas.width,
        canvas.height,
    )
    return canvas


__all__ = [
    "ALLOWED_CONTENT_TYPES",
    "ensure_supported_format",
    "fit_within",
    "normalize_content_type",
    "rasterize_document",
]
