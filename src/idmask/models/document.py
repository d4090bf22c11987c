"""Pydantic models for ID document OCR and redaction results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class BoundingBox(BaseModel):
    """Pixel-space rectangle reported by the OCR engine (origin top-left)."""

    x0: float
    y0: float
    x1: float
    y1: float

    model_config = ConfigDict(frozen=True)

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0


class OcrWord(BaseModel):
    """A single recognized token with its location and confidence (0-100)."""

    text: str
    bbox: BoundingBox
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)

    model_config = ConfigDict(frozen=True)


class OcrResult(BaseModel):
    """Full-page OCR output. Text is upper-cased by the recognizer."""

    text: str = ""
    confidence: float = 0.0
    words: list[OcrWord] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def empty(cls) -> "OcrResult":
        return cls(text="", confidence=0.0, words=[])


@dataclass(frozen=True)
class MaskBox:
    """Rectangle to redact, in the source canvas's pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"MaskBox requires positive size, got {self.width}x{self.height}")
        if self.x < 0 or self.y < 0:
            raise ValueError(f"MaskBox requires a non-negative origin, got ({self.x}, {self.y})")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


class ValidationStatus(str, Enum):
    ACCEPTED = "accepted"
    REVIEW = "review"
    REJECTED = "rejected"


class ValidationResult(BaseModel):
    """Outcome of checking OCR text against the declared ID type."""

    ok: bool
    status: ValidationStatus
    message: Optional[str] = None
    extracted_text: Optional[str] = None
    words: list[OcrWord] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


RedactionStatus = Literal["redacted", "review", "rejected", "unsupported", "failed"]


class RedactionResult(BaseModel):
    """The only value that leaves the redaction core: masked output plus status."""

    status: RedactionStatus
    id_type: str
    masked_image_data_url: Optional[str] = None
    masked_summary: Optional[str] = None
    message: Optional[str] = None
    boxes_masked: int = 0
    fallback_applied: bool = False

    @property
    def ok(self) -> bool:
        return self.status in {"redacted", "review"}
