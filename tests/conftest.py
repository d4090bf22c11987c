"""Shared pytest fixtures for the idmask test suite."""

from __future__ import annotations

import io
import os
from typing import Callable, Generator, Optional, Sequence

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from idmask.config import get_settings
from idmask.models.document import BoundingBox, OcrResult, OcrWord
from idmask.server.app import create_app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Run every test with default settings and no stray .env files."""

    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("IDMASK_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


WordFactory = Callable[..., OcrWord]


@pytest.fixture()
def make_word() -> WordFactory:
    """Build an OCR word at ``(x, y)``; width defaults to 12px per character."""

    def _make(
        text: str,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: float = 20,
        confidence: float = 90.0,
    ) -> OcrWord:
        width = width if width is not None else 12 * max(1, len(text))
        return OcrWord(
            text=text,
            bbox=BoundingBox(x0=x, y0=y, x1=x + width, y1=y + height),
            confidence=confidence,
        )

    return _make


@pytest.fixture()
def make_ocr() -> Callable[..., OcrResult]:
    """Build an OCR result whose text defaults to the words joined by spaces."""

    def _make(
        words: Sequence[OcrWord],
        text: Optional[str] = None,
        confidence: float = 90.0,
    ) -> OcrResult:
        if text is None:
            text = " ".join(word.text for word in words)
        return OcrResult(text=text.upper(), confidence=confidence, words=list(words))

    return _make


@pytest.fixture()
def image_bytes() -> Callable[..., bytes]:
    """Encode a flat-coloured image in the requested format."""

    def _make(
        size: tuple[int, int] = (400, 250),
        fmt: str = "PNG",
        color: tuple[int, int, int] = (240, 240, 240),
    ) -> bytes:
        image = Image.new("RGB", size, color=color)
        buffer = io.BytesIO()
        image.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


class StubRecognizer:
    """Recognizer returning a fixed OCR result and recording canvas sizes."""

    def __init__(self, result: OcrResult) -> None:
        self.result = result
        self.sizes: list[tuple[int, int]] = []

    def recognize(self, canvas: Image.Image) -> OcrResult:
        self.sizes.append(canvas.size)
        return self.result


@pytest.fixture()
def stub_recognizer() -> Callable[[OcrResult], StubRecognizer]:
    return StubRecognizer
