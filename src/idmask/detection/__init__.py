"""Content validation and ID-number location over OCR output."""

from .geometry import collapse_overlapping_boxes
from .locator import (
    IdLocator,
    LocatedNumber,
    collect_sequential_boxes,
    find_occurrences,
    locate_number_from_words,
)
from .shapes import DEFAULT_PROFILES, IdProfile, matcher_for
from .validator import ContentValidator, validate_id_content

__all__ = [
    "ContentValidator",
    "DEFAULT_PROFILES",
    "IdLocator",
    "IdProfile",
    "LocatedNumber",
    "collapse_overlapping_boxes",
    "collect_sequential_boxes",
    "find_occurrences",
    "locate_number_from_words",
    "matcher_for",
    "validate_id_content",
]
