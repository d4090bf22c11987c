"""Error taxonomy for the redaction pipeline."""

from __future__ import annotations


class IdMaskError(RuntimeError):
    """Base class for document redaction failures."""


class UnsupportedFormatError(IdMaskError):
    """Raised when an upload's MIME type is not one the rasterizer accepts."""

    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(
            f"Unsupported document type {content_type or 'unknown'!r}. "
            "Upload a JPEG, PNG, or PDF file."
        )


class DecodeError(IdMaskError):
    """Raised when an image or PDF cannot be decoded into a canvas."""


class ValidationRejectedError(IdMaskError):
    """Raised when recognized content does not match the declared ID type."""


class LocationMissError(IdMaskError):
    """Raised when no identity number could be located for the declared type."""


__all__ = [
    "IdMaskError",
    "UnsupportedFormatError",
    "DecodeError",
    "ValidationRejectedError",
    "LocationMissError",
]
