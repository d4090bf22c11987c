"""Camera capture sessions that feed still frames into the redaction pipeline."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import cv2

from idmask.errors import IdMaskError

logger = logging.getLogger(__name__)

CAPTURE_JPEG_QUALITY = 90
CAPTURE_CONTENT_TYPE = "image/jpeg"

DeviceOpener = Callable[[int], Any]


class CaptureError(IdMaskError):
    """Raised when the camera cannot be opened or does not deliver a frame."""


class CaptureSession:
    """Holds an open video device for the lifetime of one capture session."""

    def __init__(self, handle: Any, device: int) -> None:
        self._handle = handle
        self.device = device

    def capture_jpeg(self, quality: int = CAPTURE_JPEG_QUALITY) -> bytes:
        """Grab a single frame and return it JPEG-encoded."""

        ok, frame = self._handle.read()
        if not ok or frame is None:
            raise CaptureError(f"Camera {self.device} did not return a frame.")
        ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
        if not ok:
            raise CaptureError("Unable to encode captured frame as JPEG.")
        return buffer.tobytes()


@contextmanager
def capture_session(
    device: int = 0,
    opener: Optional[DeviceOpener] = None,
) -> Iterator[CaptureSession]:
    """Open ``device`` and release it on every exit path, including errors."""

    open_device = opener or cv2.VideoCapture
    handle = open_device(device)
    try:
        if not handle.isOpened():
            raise CaptureError(f"Unable to open camera device {device}.")
        logger.debug("Opened camera device=%s", device)
        yield CaptureSession(handle, device)
    finally:
        handle.release()
        logger.debug("Released camera device=%s", device)


__all__ = [
    "CAPTURE_CONTENT_TYPE",
    "CAPTURE_JPEG_QUALITY",
    "CaptureError",
    "CaptureSession",
    "capture_session",
]
