"""Rendering masked values onto document images and the end-to-end pipeline."""

from .pipeline import DocumentRedactionService
from .renderer import RedactionRenderer, encode_data_url

__all__ = ["DocumentRedactionService", "RedactionRenderer", "encode_data_url"]
