"""Pydantic models defining shared data contracts."""

from idmask.models.document import (
    BoundingBox,
    MaskBox,
    OcrResult,
    OcrWord,
    RedactionResult,
    RedactionStatus,
    ValidationResult,
    ValidationStatus,
)

__all__ = [
    "BoundingBox",
    "MaskBox",
    "OcrResult",
    "OcrWord",
    "RedactionResult",
    "RedactionStatus",
    "ValidationResult",
    "ValidationStatus",
]
