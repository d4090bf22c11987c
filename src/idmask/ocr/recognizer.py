"""Text recognition over a rasterized canvas using Tesseract."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

import pytesseract
from PIL import Image, ImageOps
from pytesseract import Output

from idmask.models.document import BoundingBox, OcrResult, OcrWord

logger = logging.getLogger(__name__)


class TextRecognizer(Protocol):
    """Anything that can turn a canvas into upper-cased text and word boxes."""

    def recognize(self, canvas: Image.Image) -> OcrResult:
        ...


def _safe_int(value: object) -> Optional[int]:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _safe_confidence(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return -1.0


class TesseractRecognizer:
    """Recognize words with pytesseract; failures degrade to an empty result."""

    def __init__(self, *, lang: str | None = None) -> None:
        if lang is None:
            from idmask.config import get_settings

            lang = get_settings().ocr_default_lang
        self._lang = lang

    def recognize(self, canvas: Image.Image) -> OcrResult:
        try:
            processed = self._preprocess_image(canvas)
            text = pytesseract.image_to_string(processed, lang=self._lang)
            data = pytesseract.image_to_data(
                processed, lang=self._lang, output_type=Output.DICT
            )
        except Exception:
            logger.exception("OCR failed for canvas size=%sx%s", canvas.width, canvas.height)
            return OcrResult.empty()

        words = self._collect_words(data)
        confidences = [word.confidence for word in words]
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        logger.debug("OCR recognized words=%d confidence=%.1f", len(words), confidence)
        return OcrResult(text=(text or "").upper(), confidence=confidence, words=words)

    @staticmethod
    def _preprocess_image(image: Image.Image) -> Image.Image:
        # Geometry must stay unchanged so word boxes line up with the canvas.
        processed = ImageOps.grayscale(image)
        return ImageOps.autocontrast(processed)

    @staticmethod
    def _collect_words(data: dict) -> List[OcrWord]:
        texts = data.get("text", [])
        confs = data.get("conf", [])
        lefts = data.get("left", [])
        tops = data.get("top", [])
        widths = data.get("width", [])
        heights = data.get("height", [])

        words: List[OcrWord] = []
        for idx, raw_text in enumerate(texts):
            text = (raw_text or "").strip().upper()
            if not text:
                continue
            left = _safe_int(lefts[idx] if idx < len(lefts) else None)
            top = _safe_int(tops[idx] if idx < len(tops) else None)
            width = _safe_int(widths[idx] if idx < len(widths) else None)
            height = _safe_int(heights[idx] if idx < len(heights) else None)
            if None in (left, top, width, height):
                continue
            confidence = _safe_confidence(confs[idx] if idx < len(confs) else None)
            words.append(
                OcrWord(
                    text=text,
                    bbox=BoundingBox(x0=left, y0=top, x1=left + width, y1=top + height),
                    confidence=min(100.0, max(0.0, confidence)),
                )
            )
        return words


__all__ = ["TesseractRecognizer", "TextRecognizer"]
