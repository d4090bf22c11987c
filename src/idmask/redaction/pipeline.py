"""Document redaction pipeline: rasterize, recognize, validate, locate, render."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

from idmask import metrics
from idmask.config import Settings, get_settings
from idmask.detection.locator import IdLocator
from idmask.detection.shapes import IdProfile
from idmask.detection.validator import ContentValidator
from idmask.errors import DecodeError, LocationMissError, UnsupportedFormatError
from idmask.masking.rules import MaskingRuleRegistry, default_registry
from idmask.models.document import RedactionResult, ValidationStatus
from idmask.ocr.rasterize import rasterize_document
from idmask.ocr.recognizer import TesseractRecognizer, TextRecognizer
from idmask.redaction.renderer import RedactionRenderer, encode_data_url

logger = logging.getLogger(__name__)

DECODE_FAILURE_MESSAGE = "We could not process the document. Please try a clearer scan."


class DocumentRedactionService:
    """Run one upload through the redaction chain and return a tagged result.

    No exception escapes :meth:`process`; every failure maps to a
    :class:`RedactionResult` status. The raw ID number lives only inside the
    locator's result and never reaches a log call or the returned value.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        recognizer: Optional[TextRecognizer] = None,
        validator: Optional[ContentValidator] = None,
        locator: Optional[IdLocator] = None,
        renderer: Optional[RedactionRenderer] = None,
        registry: Optional[MaskingRuleRegistry] = None,
        profiles: Optional[Mapping[str, IdProfile]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry or default_registry
        self._recognizer = recognizer or TesseractRecognizer(
            lang=self._settings.ocr_default_lang
        )
        self._validator = validator or ContentValidator.from_settings(
            self._settings, registry=self._registry, profiles=profiles
        )
        self._locator = locator or IdLocator(registry=self._registry, profiles=profiles)
        self._renderer = renderer or RedactionRenderer(
            watermark_text=self._settings.watermark_text
        )

    def process(
        self, content: bytes, content_type: Optional[str], id_type: Optional[str]
    ) -> RedactionResult:
        name = self._registry.normalize(id_type)
        try:
            result = self._run(content, content_type, name)
        except UnsupportedFormatError as exc:
            logger.warning("Unsupported document id_type=%s reason=%s", name, exc)
            result = RedactionResult(status="unsupported", id_type=name, message=str(exc))
        except DecodeError as exc:
            logger.warning("Unable to decode document id_type=%s reason=%s", name, exc)
            result = RedactionResult(
                status="failed", id_type=name, message=DECODE_FAILURE_MESSAGE
            )
        except Exception:
            logger.exception("Redaction pipeline crash id_type=%s", name)
            result = RedactionResult(
                status="failed", id_type=name, message=DECODE_FAILURE_MESSAGE
            )
        metrics.REDACTION_JOBS.labels(status=result.status).inc()
        return result

    async def aprocess(
        self, content: bytes, content_type: Optional[str], id_type: Optional[str]
    ) -> RedactionResult:
        """Run :meth:`process` in a worker thread so the event loop stays free."""

        return await asyncio.to_thread(self.process, content, content_type, id_type)

    def _run(self, content: bytes, content_type: Optional[str], id_type: str) -> RedactionResult:
        canvas = rasterize_document(
            content,
            content_type,
            max_dimension=self._settings.max_image_dimension,
            pdf_scale=self._settings.pdf_render_scale,
        )
        ocr = self._recognizer.recognize(canvas)

        validation = self._validator.validate(ocr, id_type)
        if not validation.ok:
            return RedactionResult(status="rejected", id_type=id_type, message=validation.message)

        try:
            located = self._locator.require(ocr, id_type, canvas.size)
            boxes = located.boxes
            summary = located.masked
        except LocationMissError:
            boxes = []
            summary = self._placeholder(id_type)

        image, painted = self._renderer.render(canvas, boxes, summary)
        fallback = painted == 0
        if fallback:
            metrics.FALLBACK_REDACTIONS.labels(id_type=id_type).inc()
            logger.info("No ID-number region located id_type=%s; used fallback region", id_type)

        review = validation.status == ValidationStatus.REVIEW
        logger.info(
            "Redacted document id_type=%s boxes=%d review=%s",
            id_type,
            painted,
            review,
            extra={"id_type": id_type},
        )
        return RedactionResult(
            status="review" if review else "redacted",
            id_type=id_type,
            masked_image_data_url=encode_data_url(image, quality=self._settings.jpeg_quality),
            masked_summary=summary,
            message=validation.message if review else None,
            boxes_masked=painted,
            fallback_applied=fallback,
        )

    def _placeholder(self, id_type: str) -> Optional[str]:
        profile = self._locator.profile_for(id_type)
        return profile.placeholder


__all__ = ["DECODE_FAILURE_MESSAGE", "DocumentRedactionService"]
