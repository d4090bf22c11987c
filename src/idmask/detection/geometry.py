"""Bounding-box helpers used to turn OCR word boxes into redaction regions."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

from idmask.models.document import BoundingBox, MaskBox

MIN_PADDING_PX = 10
MAX_PADDING_RATIO = 0.06
PADDING_SHARE = 0.25

_Rect = tuple[float, float, float, float]


def box_from_bbox(bbox: BoundingBox) -> Optional[MaskBox]:
    """Convert an OCR bounding box to a pixel-aligned mask box, or None if degenerate."""

    left = max(0, math.floor(min(bbox.x0, bbox.x1)))
    top = max(0, math.floor(min(bbox.y0, bbox.y1)))
    right = math.ceil(max(bbox.x0, bbox.x1))
    bottom = math.ceil(max(bbox.y0, bbox.y1))
    if right <= left or bottom <= top:
        return None
    return MaskBox(x=left, y=top, width=right - left, height=bottom - top)


def union_box(boxes: Sequence[MaskBox]) -> MaskBox:
    """Smallest box covering every box in ``boxes``."""

    if not boxes:
        raise ValueError("union_box requires at least one box")
    left = min(box.x for box in boxes)
    top = min(box.y for box in boxes)
    right = max(box.right for box in boxes)
    bottom = max(box.bottom for box in boxes)
    return MaskBox(x=left, y=top, width=right - left, height=bottom - top)


def merge_bboxes(bboxes: Iterable[BoundingBox]) -> Optional[MaskBox]:
    boxes = [box for box in (box_from_bbox(bbox) for bbox in bboxes) if box is not None]
    if not boxes:
        return None
    return union_box(boxes)


def clamp_box(
    box: MaskBox, canvas_width: int, canvas_height: int, padding: int = 0
) -> Optional[MaskBox]:
    """Grow ``box`` by ``padding`` and clip it to the canvas; None if nothing is left."""

    left = max(0, box.x - padding)
    top = max(0, box.y - padding)
    right = min(canvas_width, box.right + padding)
    bottom = min(canvas_height, box.bottom + padding)
    if right <= left or bottom <= top:
        return None
    return MaskBox(x=left, y=top, width=right - left, height=bottom - top)


def _expanded(box: MaskBox, canvas_width: int, canvas_height: int) -> _Rect:
    share = box.height * PADDING_SHARE
    pad_x = min(max(MIN_PADDING_PX, share), canvas_width * MAX_PADDING_RATIO)
    pad_y = min(max(MIN_PADDING_PX, share), canvas_height * MAX_PADDING_RATIO)
    return (box.x - pad_x, box.y - pad_y, box.right + pad_x, box.bottom + pad_y)


def _intersects(a: _Rect, b: _Rect) -> bool:
    return a[0] < b[2] and b[0] < a[2] and a[1] < b[3] and b[1] < a[3]


def collapse_overlapping_boxes(
    boxes: Iterable[MaskBox], canvas_width: int, canvas_height: int
) -> list[MaskBox]:
    """Merge boxes whose padded rectangles intersect until no pair does.

    Separate occurrences elsewhere on the page stay separate. The result is
    ordered top-to-bottom, left-to-right, and collapsing it again is a no-op.
    """

    merged = list(dict.fromkeys(boxes))
    changed = True
    while changed:
        changed = False
        for i in range(len(merged)):
            rect_i = _expanded(merged[i], canvas_width, canvas_height)
            for j in range(i + 1, len(merged)):
                if _intersects(rect_i, _expanded(merged[j], canvas_width, canvas_height)):
                    merged[i] = union_box([merged[i], merged[j]])
                    del merged[j]
                    changed = True
                    break
            if changed:
                break
    return sorted(merged, key=lambda box: (box.y, box.x))


__all__ = [
    "box_from_bbox",
    "clamp_box",
    "collapse_overlapping_boxes",
    "merge_bboxes",
    "union_box",
]
