"""Rasterization and OCR for uploaded identity documents."""

from .rasterize import ALLOWED_CONTENT_TYPES, ensure_supported_format, rasterize_document
from .recognizer import TesseractRecognizer, TextRecognizer

__all__ = [
    "ALLOWED_CONTENT_TYPES",
    "TesseractRecognizer",
    "TextRecognizer",
    "ensure_supported_format",
    "rasterize_document",
]
