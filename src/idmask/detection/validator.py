"""Keyword and pattern heuristics deciding whether OCR text matches the declared ID type."""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from idmask.config import Settings, get_settings
from idmask.detection.shapes import (
    DEFAULT_PROFILES,
    GENERIC_IDENTITY_PATTERN,
    IdProfile,
    resolve_profile,
)
from idmask.errors import ValidationRejectedError
from idmask.masking.rules import MaskingRuleRegistry, default_registry
from idmask.metrics import VALIDATIONS
from idmask.models.document import OcrResult, ValidationResult, ValidationStatus

logger = logging.getLogger(__name__)

REVIEW_MESSAGE = (
    "We could not auto-verify this ID with high confidence. Flagged for manual review."
)

_WHITESPACE = re.compile(r"\s+")


def rejection_message(id_type: str) -> str:
    return f"The uploaded file does not look like a valid {id_type}."


class ContentValidator:
    """Gate the pipeline on whether recognized text plausibly belongs to ``id_type``.

    A structural match (MRZ, number layout, or licence keywords) accepts the
    document outright. Failing that, the type's hint keywords must be present
    and the capture must look like a real but noisy document (long enough text,
    low OCR confidence, or generic identity wording) to pass with a review flag.
    Everything else is rejected.
    """

    def __init__(
        self,
        *,
        min_text_length: int = 20,
        max_confidence: float = 40.0,
        profiles: Optional[Mapping[str, IdProfile]] = None,
        registry: Optional[MaskingRuleRegistry] = None,
    ) -> None:
        self._min_text_length = min_text_length
        self._max_confidence = max_confidence
        self._profiles: dict[str, IdProfile] = dict(DEFAULT_PROFILES)
        self._profiles.update(profiles or {})
        self._registry = registry or default_registry

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "ContentValidator":
        settings = settings or get_settings()
        return cls(
            min_text_length=settings.review_min_text_length,
            max_confidence=settings.review_max_confidence,
            **kwargs,
        )

    def validate(self, ocr: OcrResult, id_type: Optional[str]) -> ValidationResult:
        name = self._registry.normalize(id_type)
        profile = resolve_profile(name, self._profiles, self._registry)
        text = _WHITESPACE.sub(" ", ocr.text.upper()).strip()

        if profile.structural is not None and profile.structural.search(text):
            return self._record(
                name,
                ValidationResult(
                    ok=True,
                    status=ValidationStatus.ACCEPTED,
                    extracted_text=ocr.text,
                    words=list(ocr.words),
                ),
            )

        if profile.hint.search(text) and self._looks_like_document(text, ocr.confidence):
            return self._record(
                name,
                ValidationResult(
                    ok=True,
                    status=ValidationStatus.REVIEW,
                    message=REVIEW_MESSAGE,
                    extracted_text=ocr.text,
                    words=list(ocr.words),
                ),
            )

        return self._record(
            name,
            ValidationResult(
                ok=False,
                status=ValidationStatus.REJECTED,
                message=rejection_message(name),
            ),
        )

    def ensure_accepted(self, ocr: OcrResult, id_type: Optional[str]) -> ValidationResult:
        """Validate and raise :class:`ValidationRejectedError` instead of returning a rejection."""

        result = self.validate(ocr, id_type)
        if not result.ok:
            raise ValidationRejectedError(result.message or rejection_message(str(id_type)))
        return result

    def _looks_like_document(self, text: str, confidence: float) -> bool:
        condensed = _WHITESPACE.sub("", text)
        return (
            len(condensed) > self._min_text_length
            or confidence < self._max_confidence
            or GENERIC_IDENTITY_PATTERN.search(text) is not None
        )

    @staticmethod
    def _record(id_type: str, result: ValidationResult) -> ValidationResult:
        VALIDATIONS.labels(id_type=id_type, status=result.status.value).inc()
        logger.info("Validation id_type=%s status=%s", id_type, result.status.value)
        return result


def validate_id_content(ocr: OcrResult, id_type: Optional[str]) -> ValidationResult:
    return ContentValidator.from_settings().validate(ocr, id_type)


__all__ = [
    "ContentValidator",
    "REVIEW_MESSAGE",
    "rejection_message",
    "validate_id_content",
]
