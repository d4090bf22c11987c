"""Paint masked values over located ID-number regions."""

from __future__ import annotations

import base64
import io
import logging
from functools import lru_cache
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from idmask.detection.geometry import clamp_box
from idmask.models.document import MaskBox

logger = logging.getLogger(__name__)

BOX_PADDING_PX = 2
FONT_HEIGHT_RATIO = 0.7
MIN_FONT_SIZE = 12
FALLBACK_REGION = (0.15, 0.38, 0.70, 0.14)
FALLBACK_TEXT = "Sensitive details masked"
DEFAULT_WATERMARK = "Masked copy - for verification only"

BOX_FILL = (255, 255, 255)
BOX_TEXT = (0, 0, 0)
FALLBACK_FILL = (32, 32, 32)
FALLBACK_TEXT_FILL = (255, 255, 255)
WATERMARK_FILL = (46, 62, 52)
WATERMARK_TEXT_FILL = (243, 241, 237)

_BOLD_FONT_CANDIDATES = (
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "Arial Bold.ttf",
    "arialbd.ttf",
)
_REGULAR_FONT_CANDIDATES = (
    "DejaVuSans.ttf",
    "LiberationSans-Regular.ttf",
    "Arial.ttf",
    "arial.ttf",
)

Font = ImageFont.FreeTypeFont | ImageFont.ImageFont


@lru_cache(maxsize=128)
def _load_font(size: int, bold: bool = True) -> Font:
    candidates = _BOLD_FONT_CANDIDATES if bold else _REGULAR_FONT_CANDIDATES
    for name in candidates:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _fit_font(draw: ImageDraw.ImageDraw, text: str, box: MaskBox, bold: bool = True) -> Font:
    """Largest font near 70% of the box height whose rendering fits the box width."""

    size = max(MIN_FONT_SIZE, int(box.height * FONT_HEIGHT_RATIO))
    font = _load_font(size, bold)
    while size > MIN_FONT_SIZE and draw.textlength(text, font=font) > box.width:
        size -= 1
        font = _load_font(size, bold)
    return font


def _draw_centered(
    draw: ImageDraw.ImageDraw,
    text: str,
    box: MaskBox,
    fill: tuple[int, int, int],
    *,
    bold: bool = True,
) -> None:
    font = _fit_font(draw, text, box, bold)
    center = (box.x + box.width / 2, box.y + box.height / 2)
    draw.text(center, text, fill=fill, font=font, anchor="mm")


def fallback_box(width: int, height: int) -> Optional[MaskBox]:
    """The fixed proportional region redacted when no box could be located."""

    rel_x, rel_y, rel_w, rel_h = FALLBACK_REGION
    region = MaskBox(
        x=int(width * rel_x),
        y=int(height * rel_y),
        width=max(1, int(width * rel_w)),
        height=max(1, int(height * rel_h)),
    )
    return clamp_box(region, width, height)


def encode_data_url(image: Image.Image, quality: int = 85) -> str:
    """Encode ``image`` as a ``data:image/jpeg;base64,...`` URL."""

    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    payload = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{payload}"


class RedactionRenderer:
    """Draw opaque masks with the masked value over a copy of the canvas."""

    def __init__(
        self,
        *,
        watermark_text: Optional[str] = DEFAULT_WATERMARK,
        padding: int = BOX_PADDING_PX,
    ) -> None:
        self._watermark_text = watermark_text
        self._padding = padding

    def render(
        self,
        canvas: Image.Image,
        boxes: Sequence[MaskBox],
        masked_text: Optional[str],
    ) -> tuple[Image.Image, int]:
        """Return the redacted copy and the number of regions painted.

        With no boxes a single fallback region is painted instead, showing
        ``masked_text`` or a generic notice.
        """

        image = canvas.convert("RGB")
        draw = ImageDraw.Draw(image)
        width, height = image.size
        painted = 0

        for box in boxes:
            region = clamp_box(box, width, height, padding=self._padding)
            if region is None:
                continue
            draw.rectangle(
                (region.x, region.y, region.right - 1, region.bottom - 1), fill=BOX_FILL
            )
            if masked_text:
                _draw_centered(draw, masked_text, region, BOX_TEXT)
            painted += 1

        if painted == 0:
            region = fallback_box(width, height)
            if region is not None:
                draw.rectangle(
                    (region.x, region.y, region.right - 1, region.bottom - 1),
                    fill=FALLBACK_FILL,
                )
                _draw_centered(
                    draw, masked_text or FALLBACK_TEXT, region, FALLBACK_TEXT_FILL, bold=False
                )
                logger.debug("Painted fallback region size=%sx%s", region.width, region.height)

        if self._watermark_text:
            self._draw_watermark(draw, width, height)
        return image, painted

    def _draw_watermark(self, draw: ImageDraw.ImageDraw, width: int, height: int) -> None:
        stripe_height = min(height, max(24, round(height * 0.08)))
        stripe = MaskBox(x=0, y=height - stripe_height, width=width, height=stripe_height)
        draw.rectangle((0, stripe.y, width - 1, height - 1), fill=WATERMARK_FILL)
        _draw_centered(draw, self._watermark_text or "", stripe, WATERMARK_TEXT_FILL, bold=False)


__all__ = [
    "FALLBACK_REGION",
    "FALLBACK_TEXT",
    "RedactionRenderer",
    "encode_data_url",
    "fallback_box",
]
