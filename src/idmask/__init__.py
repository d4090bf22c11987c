"""
idmask identity-document redaction package.

The package rasterizes uploaded ID documents, locates the identity number in the
OCR output, and produces a masked copy of the image that is safe to store or share.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
