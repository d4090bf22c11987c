"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for authenticated endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    ocr_default_lang: str = Field(
        default="eng",
        description="Default Tesseract language code for OCR processing.",
    )
    max_image_dimension: int = Field(
        default=1600,
        description="Longest side, in pixels, that uploaded images are downscaled to.",
    )
    pdf_render_scale: float = Field(
        default=1.5,
        description="Scale factor applied when rendering the first PDF page.",
    )
    review_min_text_length: int = Field(
        default=20,
        description="Condensed OCR text longer than this qualifies a hint match for manual review.",
    )
    review_max_confidence: float = Field(
        default=40.0,
        description="OCR confidence below this qualifies a hint match for manual review.",
    )
    jpeg_quality: int = Field(
        default=85,
        description="JPEG quality used when encoding the masked image.",
    )
    watermark_text: Optional[str] = Field(
        default="Masked copy - for verification only",
        description="Text drawn on the bottom stripe of masked images (empty disables it).",
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted upload size in bytes.",
    )
    capture_device: int = Field(
        default=0,
        description="Video device index used for camera capture sessions.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_text(value: str) -> Optional[str]:
    return value or None


# Environment variable -> (settings field, converter). Values that fail to
# convert are ignored and the field keeps its default.
_ENV_FIELDS: dict[str, tuple[str, Callable[[str], object]]] = {
    "IDMASK_API_TOKEN": ("api_token", str),
    "IDMASK_LOG_LEVEL": ("log_level", str),
    "IDMASK_LOG_FORMAT": ("log_format", str),
    "IDMASK_LOG_REQUESTS": ("log_requests", _coerce_bool),
    "IDMASK_OCR_LANG": ("ocr_default_lang", str),
    "IDMASK_MAX_IMAGE_DIMENSION": ("max_image_dimension", int),
    "IDMASK_PDF_RENDER_SCALE": ("pdf_render_scale", float),
    "IDMASK_REVIEW_MIN_TEXT_LENGTH": ("review_min_text_length", int),
    "IDMASK_REVIEW_MAX_CONFIDENCE": ("review_max_confidence", float),
    "IDMASK_JPEG_QUALITY": ("jpeg_quality", int),
    "IDMASK_MAX_UPLOAD_BYTES": ("max_upload_bytes", int),
    "IDMASK_CAPTURE_DEVICE": ("capture_device", int),
}
# Read even when set to an empty string, which clears the field.
_ENV_CLEARABLE_FIELDS: dict[str, tuple[str, Callable[[str], object]]] = {
    "IDMASK_WATERMARK_TEXT": ("watermark_text", _optional_text),
}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()
    payload: dict[str, object] = {}

    for key, (field, convert) in _ENV_FIELDS.items():
        if not (raw := os.environ.get(key) or file_values.get(key)):
            continue
        try:
            payload[field] = convert(raw)
        except ValueError:
            continue

    for key, (field, convert) in _ENV_CLEARABLE_FIELDS.items():
        raw = os.environ.get(key, file_values.get(key))
        if raw is not None:
            payload[field] = convert(raw)
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
