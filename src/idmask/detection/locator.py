"""Locate the identity number inside OCR output and every region it occupies."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Sequence

from idmask.detection.geometry import collapse_overlapping_boxes, merge_bboxes
from idmask.detection.shapes import (
    DEFAULT_PROFILES,
    IdProfile,
    ShapeMatcher,
    matcher_for,
    resolve_profile,
)
from idmask.errors import LocationMissError
from idmask.masking.rules import MaskingRuleRegistry, default_registry
from idmask.models.document import MaskBox, OcrResult, OcrWord

logger = logging.getLogger(__name__)

Normalizer = Callable[[str], str]

_WHITESPACE = re.compile(r"\s+")
_DIGIT_GROUP = re.compile(r"\d+")
_DATE_TOKEN = re.compile(r"^\d{1,2}[./-]\d{1,2}[./-]\d{2,4}[.,;:]?$")
_FIELD_LABEL = re.compile(r"^\d{1,2}[A-Z]?\.$")

SAME_LINE_OVERLAP = 0.5


@dataclass
class LocatedNumber:
    """The matched identity number, its masked form, and where it appears.

    ``number`` is the raw value and must never be logged, persisted, or
    returned to callers; it is excluded from ``repr``.
    """

    number: str = field(repr=False)
    masked: str
    boxes: list[MaskBox] = field(default_factory=list)


@dataclass(frozen=True)
class WordScanMatch:
    value: str = field(repr=False)
    boxes: list[MaskBox] = field(default_factory=list)


def _has_digit(token: str) -> bool:
    return any(char.isdigit() for char in token)


def _has_letter(token: str) -> bool:
    return any(char.isalpha() for char in token)


def find_occurrences(
    words: Sequence[OcrWord], target: str, normalize: Normalizer
) -> list[MaskBox]:
    """Return one box per minimal run of consecutive words that spells ``target``.

    A run may be a single token that embeds the whole number among extra
    characters, or several tokens whose normalized text concatenates to it.
    Tokens that normalize to nothing are skipped inside a run.
    """

    if not target:
        return []
    tokens = [normalize(word.text) for word in words]
    boxes: list[MaskBox] = []
    start = 0
    while start < len(tokens):
        first = tokens[start]
        if not first:
            start += 1
            continue
        concat = ""
        consumed: list[int] = []
        end: Optional[int] = None
        for index in range(start, len(tokens)):
            token = tokens[index]
            if not token:
                continue
            concat += token
            consumed.append(index)
            position = concat.find(target)
            if position != -1:
                # Only count runs whose first token contributes to the match.
                if position < len(first):
                    end = index
                break
            if len(concat) - len(first) >= len(target):
                break
        if end is None:
            start += 1
            continue
        box = merge_bboxes(words[i].bbox for i in consumed)
        if box is not None:
            boxes.append(box)
        start = end + 1
    return boxes


def _is_run_breaker(word: OcrWord) -> bool:
    text = word.text.strip().upper()
    return bool(_DATE_TOKEN.match(text) or _FIELD_LABEL.match(text))


def _same_line(previous: OcrWord, current: OcrWord) -> bool:
    """True when the two boxes overlap vertically by at least half the smaller height."""

    a, b = previous.bbox, current.bbox
    overlap = min(a.y1, b.y1) - max(a.y0, b.y0)
    smaller = min(a.height, b.height)
    if smaller <= 0:
        return True
    return overlap >= SAME_LINE_OVERLAP * smaller


def _digit_groups(text: str) -> list[int]:
    return [len(group) for group in _DIGIT_GROUP.findall(text)]


def locate_number_from_words(
    words: Sequence[OcrWord],
    matcher: ShapeMatcher,
    canonical: Optional[str] = None,
) -> Optional[WordScanMatch]:
    """Scan the word sequence for runs whose concatenation fits ``matcher``.

    A run stays on one text line and never includes dates or numbered field
    labels such as ``3.``. Each run is extended while its concatenation still
    fits, so the longest accepted run from a given start wins. The first
    accepted run fixes the canonical value (unless one is given); later runs
    are recorded only when they equal that same value.
    """

    tokens = [matcher.normalize(word.text) for word in words]
    boxes: list[MaskBox] = []
    start = 0
    while start < len(tokens):
        if not tokens[start] or _is_run_breaker(words[start]):
            start += 1
            continue
        concat = ""
        consumed: list[int] = []
        groups: list[int] = []
        accepted: Optional[tuple[str, int]] = None
        for index in range(start, len(tokens)):
            token = tokens[index]
            if consumed and not _same_line(words[consumed[-1]], words[index]):
                break
            if _is_run_breaker(words[index]):
                break
            if not token:
                # Labels such as "DOB:" end a digit run; bare separators do not.
                if matcher.digits_only and _has_letter(words[index].text):
                    break
                continue
            # Alphanumeric runs are built from digit-bearing tokens only.
            if not matcher.digits_only and not _has_digit(token):
                break
            concat += token
            if len(concat) > matcher.max_length:
                break
            consumed.append(index)
            groups.extend(_digit_groups(words[index].text))
            if matcher.accepts(concat) and matcher.accepts_grouping(groups):
                accepted = (concat, len(consumed))
        if accepted is None:
            start += 1
            continue
        value, used = accepted
        if canonical is None:
            canonical = value
        if value != canonical:
            start += 1
            continue
        consumed = consumed[:used]
        matched_end = consumed[-1]
        box = merge_bboxes(words[i].bbox for i in consumed)
        if box is not None:
            boxes.append(box)
        start = matched_end + 1

    if canonical is None:
        return None
    return WordScanMatch(value=canonical, boxes=boxes)


def collect_sequential_boxes(
    words: Sequence[OcrWord], target: str, normalize: Normalizer
) -> list[MaskBox]:
    """Re-scan every word for all occurrences of an already-known number."""

    return find_occurrences(words, normalize(target), normalize)


def _search_text(text: str, matcher: ShapeMatcher) -> Optional[str]:
    condensed = _WHITESPACE.sub(" ", text.upper())
    for match in matcher.text_pattern.finditer(condensed):
        candidate = matcher.normalize(match.group())
        groups = _digit_groups(match.group())
        if matcher.accepts(candidate) and matcher.accepts_grouping(groups):
            return candidate
    return None


class IdLocator:
    """Find the declared type's identity number and the boxes to redact."""

    def __init__(
        self,
        *,
        registry: Optional[MaskingRuleRegistry] = None,
        profiles: Optional[Mapping[str, IdProfile]] = None,
    ) -> None:
        self._registry = registry or default_registry
        self._profiles: dict[str, IdProfile] = dict(DEFAULT_PROFILES)
        self._profiles.update(profiles or {})

    def profile_for(self, id_type: Optional[str]) -> IdProfile:
        return resolve_profile(self._registry.normalize(id_type), self._profiles, self._registry)

    def locate(
        self,
        ocr: OcrResult,
        id_type: Optional[str],
        canvas_size: tuple[int, int],
    ) -> Optional[LocatedNumber]:
        """Return the located number, or None when nothing matches the type's shape."""

        matcher = matcher_for(self.profile_for(id_type).shape)
        if matcher is None:
            return None

        scan = locate_number_from_words(ocr.words, matcher)
        if scan is not None:
            number = scan.value
            boxes = list(scan.boxes)
        else:
            number = _search_text(ocr.text, matcher)
            if number is None:
                return None
            boxes = []

        boxes.extend(collect_sequential_boxes(ocr.words, number, matcher.normalize))
        width, height = canvas_size
        boxes = collapse_overlapping_boxes(boxes, width, height)
        masked = self._registry.mask(id_type, number)
        logger.debug(
            "Located id_type=%s masked=%s boxes=%d",
            self._registry.normalize(id_type),
            masked,
            len(boxes),
        )
        return LocatedNumber(number=number, masked=masked, boxes=boxes)

    def require(
        self,
        ocr: OcrResult,
        id_type: Optional[str],
        canvas_size: tuple[int, int],
    ) -> LocatedNumber:
        """Like :meth:`locate` but raises :class:`LocationMissError` on a miss."""

        located = self.locate(ocr, id_type, canvas_size)
        if located is None:
            raise LocationMissError(
                f"No {self._registry.normalize(id_type)} number found in recognized text."
            )
        return located


def locate_id_number(
    ocr: OcrResult,
    id_type: Optional[str],
    canvas_size: tuple[int, int],
    registry: Optional[MaskingRuleRegistry] = None,
) -> Optional[LocatedNumber]:
    return IdLocator(registry=registry).locate(ocr, id_type, canvas_size)


__all__ = [
    "IdLocator",
    "LocatedNumber",
    "WordScanMatch",
    "collect_sequential_boxes",
    "find_occurrences",
    "locate_id_number",
    "locate_number_from_words",
]
