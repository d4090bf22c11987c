"""ID-number shapes and per-type document profiles.

Each ID type is described by a tagged shape variant (what its number looks like)
plus the keyword patterns the content validator relies on. Adding a new country's
format means adding a profile here, not new branches in the locator.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Pattern, Sequence, Union

from idmask.masking.rules import MaskingRuleRegistry

_NON_DIGIT = re.compile(r"\D")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")


@dataclass(frozen=True)
class FixedDigits:
    """Exactly ``length`` digits once separators are removed.

    ``groups`` is the printed grouping (e.g. 3-2-4 for an SSN). When set, digits
    that are visibly separated must follow it.
    """

    length: int
    groups: tuple[int, ...] = ()


@dataclass(frozen=True)
class PrefixedDigits:
    """A fixed digit prefix followed by digit groups, e.g. 784-NNNN-NNNNNNN-N."""

    prefix: str
    groups: tuple[int, ...]

    @property
    def length(self) -> int:
        return len(self.prefix) + sum(self.groups)


@dataclass(frozen=True)
class AlphaNumericPattern:
    """Upper-case alphanumerics matching ``pattern`` in full."""

    pattern: str
    min_length: int
    max_length: int


@dataclass(frozen=True)
class KeywordOnly:
    """Documents recognised by keywords only; the number itself is not located."""

    keywords: tuple[str, ...] = ()


NumberShape = Union[FixedDigits, PrefixedDigits, AlphaNumericPattern, KeywordOnly]


def digits_only(text: str) -> str:
    return _NON_DIGIT.sub("", text)


def alphanumeric(text: str) -> str:
    return _NON_ALNUM.sub("", text.upper())


@dataclass(frozen=True)
class ShapeMatcher:
    """Normalization and acceptance test derived from a :data:`NumberShape`."""

    digits_only: bool
    min_length: int
    max_length: int
    text_pattern: Pattern[str]
    pattern: Optional[Pattern[str]] = None
    groups: tuple[int, ...] = ()

    def normalize(self, text: str) -> str:
        return digits_only(text) if self.digits_only else alphanumeric(text)

    def accepts(self, candidate: str) -> bool:
        if not self.min_length <= len(candidate) <= self.max_length:
            return False
        if self.pattern is not None:
            return self.pattern.fullmatch(candidate) is not None
        return True

    def accepts_grouping(self, groups: Sequence[int]) -> bool:
        """Separated digit groups must match the printed grouping, if one is known."""

        if not self.groups or len(groups) <= 1:
            return True
        return tuple(groups) == self.groups


def matcher_for(shape: NumberShape) -> Optional[ShapeMatcher]:
    """Build the matcher for ``shape``; keyword-only shapes have none."""

    if isinstance(shape, FixedDigits):
        if shape.groups:
            grouped = r"[ -]?".join(rf"\d{{{size}}}" for size in shape.groups)
        else:
            grouped = rf"(?:\d[ -]?){{{shape.length - 1}}}\d"
        return ShapeMatcher(
            digits_only=True,
            min_length=shape.length,
            max_length=shape.length,
            text_pattern=re.compile(rf"(?<!\d){grouped}(?!\d)"),
            groups=shape.groups,
        )
    if isinstance(shape, PrefixedDigits):
        grouped = "".join(rf"[ -]?\d{{{size}}}" for size in shape.groups)
        body = "".join(rf"\d{{{size}}}" for size in shape.groups)
        return ShapeMatcher(
            digits_only=True,
            min_length=shape.length,
            max_length=shape.length,
            pattern=re.compile(rf"{re.escape(shape.prefix)}{body}"),
            text_pattern=re.compile(rf"(?<!\d){re.escape(shape.prefix)}{grouped}(?!\d)"),
            groups=(len(shape.prefix), *shape.groups),
        )
    if isinstance(shape, AlphaNumericPattern):
        return ShapeMatcher(
            digits_only=False,
            min_length=shape.min_length,
            max_length=shape.max_length,
            pattern=re.compile(shape.pattern),
            text_pattern=re.compile(rf"\b{shape.pattern}\b"),
        )
    if isinstance(shape, KeywordOnly):
        return None
    raise TypeError(f"Unsupported number shape: {shape!r}")


@dataclass(frozen=True)
class IdProfile:
    """Everything the validator and locator need to know about one ID type."""

    shape: NumberShape
    hint: Pattern[str]
    structural: Optional[Pattern[str]] = None
    placeholder: Optional[str] = None


GENERIC_IDENTITY_PATTERN = re.compile(r"\b(?:IDENTITY|GOVERNMENT|PERMIT)\b")

_LICENCE_SHAPE = AlphaNumericPattern(
    pattern=r"(?=(?:[A-Z]*\d){4})[A-Z0-9]{6,16}", min_length=6, max_length=16
)
_LICENCE_PROFILE = IdProfile(
    shape=_LICENCE_SHAPE,
    structural=re.compile(r"\bDRIVER\b|\bLICENCE\b|\bLICENSE\b"),
    hint=re.compile(r"DRIV|LICEN[CS]E|\bDL\b|MOTOR VEHICLE"),
    placeholder="XXXX XXXX",
)

DEFAULT_PROFILES: Mapping[str, IdProfile] = MappingProxyType(
    {
        "Aadhaar": IdProfile(
            shape=FixedDigits(12, (4, 4, 4)),
            structural=re.compile(r"\b\d{4}\s?\d{4}\s?\d{4}\b"),
            hint=re.compile(r"AADHAAR|AADHAR|UIDAI|GOVERNMENT OF INDIA"),
            placeholder="XXXX XXXX XXXX",
        ),
        "Passport": IdProfile(
            shape=AlphaNumericPattern(pattern=r"[A-Z][0-9]{7,9}", min_length=8, max_length=10),
            structural=re.compile(r"P<[A-Z0-9< ]*?<{5,}"),
            hint=re.compile(r"PASSPORT|REPUBLIC|P<"),
            placeholder="PXXXXXXX",
        ),
        "Emirates ID": IdProfile(
            shape=PrefixedDigits("784", (4, 7, 1)),
            structural=re.compile(r"\b784-?\d{4}-?\d{7}-?\d\b"),
            hint=re.compile(r"EMIRATES|UNITED ARAB|RESIDENT IDENTITY|IDENTITY CARD|\b784"),
            placeholder="784-XXXX-XXXXXXX-X",
        ),
        "Social Security Number": IdProfile(
            shape=FixedDigits(9, (3, 2, 4)),
            structural=re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
            hint=re.compile(r"SOCIAL SECURITY|\bSSN\b"),
            placeholder="XXX-XX-XXXX",
        ),
        "Driver License": _LICENCE_PROFILE,
        "Driving Licence": _LICENCE_PROFILE,
        "State ID": IdProfile(
            shape=_LICENCE_SHAPE,
            structural=re.compile(r"\bSTATE\b.*\bID\b|\bID\b.*\bSTATE\b"),
            hint=re.compile(r"STATE|IDENTIFICATION|\bID CARD\b"),
            placeholder="XXXX XXXX",
        ),
        "BRP": IdProfile(
            shape=AlphaNumericPattern(pattern=r"[A-Z]{2}\d{7}", min_length=9, max_length=9),
            structural=re.compile(r"\bRESIDENCE PERMIT\b|\bBRP\b"),
            hint=re.compile(r"RESIDENCE|PERMIT|HOME OFFICE|\bBRP\b"),
            placeholder="XX XXXXXXX",
        ),
        "National ID": IdProfile(
            shape=KeywordOnly(("NATIONAL", "IDENTITY")),
            hint=re.compile(r"NATIONAL|IDENTITY|\bID\b"),
        ),
        "Tax ID": IdProfile(
            shape=KeywordOnly(("TAX",)),
            hint=re.compile(r"\bTAX\b|\bTIN\b|PERMANENT ACCOUNT"),
        ),
    }
)

DEFAULT_PROFILE = IdProfile(shape=KeywordOnly(), hint=GENERIC_IDENTITY_PATTERN)

DERIVED_MAX_LENGTH = 24

_LEADING_ANCHOR = re.compile(r"^(?:\^|\\A)")
_TRAILING_ANCHOR = re.compile(r"(?:\$|\\Z)$")


def profile_from_pattern(pattern: Pattern[str]) -> IdProfile:
    """Profile for a type known only by its registered full-value pattern.

    The number is located by that pattern and its presence in the text is the
    structural match; generic identity wording counts as a hint.
    """

    body = _TRAILING_ANCHOR.sub("", _LEADING_ANCHOR.sub("", pattern.pattern))
    if pattern.flags & re.IGNORECASE:
        body = f"(?i:{body})"
    else:
        body = f"(?:{body})"
    return IdProfile(
        shape=AlphaNumericPattern(pattern=body, min_length=1, max_length=DERIVED_MAX_LENGTH),
        structural=re.compile(rf"\b{body}\b"),
        hint=GENERIC_IDENTITY_PATTERN,
    )


def resolve_profile(
    id_type: str,
    profiles: Mapping[str, IdProfile],
    registry: MaskingRuleRegistry,
) -> IdProfile:
    """Profile for a normalized type name, falling back to its masking rule's pattern."""

    if (profile := profiles.get(id_type)) is not None:
        return profile
    rule = registry.get(id_type)
    if rule is not None and rule.pattern is not None:
        return profile_from_pattern(rule.pattern)
    return DEFAULT_PROFILE


__all__ = [
    "AlphaNumericPattern",
    "DEFAULT_PROFILE",
    "DEFAULT_PROFILES",
    "FixedDigits",
    "GENERIC_IDENTITY_PATTERN",
    "IdProfile",
    "KeywordOnly",
    "NumberShape",
    "PrefixedDigits",
    "ShapeMatcher",
    "alphanumeric",
    "digits_only",
    "matcher_for",
    "profile_from_pattern",
    "resolve_profile",
]
