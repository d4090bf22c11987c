"""Per-ID-type masking rules and the generic format-preserving string masker."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterator, Mapping, Optional, Pattern

logger = logging.getLogger(__name__)

PLACEHOLDER = "XXXX"
MASK_CHAR = "X"
MIN_MASK_RUN = 4

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_NON_DIGIT = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class MaskingRule:
    """Detection pattern and formatter for one ID type."""

    mask: Callable[[str], str]
    pattern: Optional[Pattern[str]] = None
    visible_chars: int = 4
    mask_char: str = MASK_CHAR
    preserve_format: bool = False


def clean_alnum(value: str) -> str:
    return _NON_ALNUM.sub("", value)


def clean_digits(value: str) -> str:
    return _NON_DIGIT.sub("", value)


def default_mask(value: Optional[str], visible_chars: int = 4) -> str:
    """Mask all but the last ``visible_chars`` alphanumerics.

    At least four mask characters are always emitted for long values. Values no
    longer than ``visible_chars`` reveal only half of their characters (rounded
    down, at least one) and never the whole string.
    """

    if not value:
        return PLACEHOLDER
    cleaned = clean_alnum(value)
    if not cleaned:
        return PLACEHOLDER

    length = len(cleaned)
    if length <= visible_chars:
        show = min(max(1, length // 2), length - 1)
        return MASK_CHAR * (length - show) + cleaned[length - show:]

    visible = cleaned[length - visible_chars:]
    return MASK_CHAR * max(MIN_MASK_RUN, length - visible_chars) + visible


def _mask_aadhaar(value: str) -> str:
    digits = clean_digits(value)
    if len(digits) == 12:
        return f"XXXX XXXX {digits[-4:]}"
    return default_mask(value, 4)


def _mask_passport(value: str) -> str:
    cleaned = clean_alnum(value).upper()
    if len(cleaned) >= 8:
        return f"{cleaned[0]}{MASK_CHAR * max(5, len(cleaned) - 3)}{cleaned[-2:]}"
    return default_mask(value, 2)


def _mask_ssn(value: str) -> str:
    digits = clean_digits(value)
    if len(digits) == 9:
        return f"XXX-XX-{digits[-4:]}"
    return default_mask(value, 4)


def _mask_licence(value: str) -> str:
    cleaned = clean_alnum(value).upper()
    if len(cleaned) >= 6:
        return MASK_CHAR * max(MIN_MASK_RUN, len(cleaned) - 4) + cleaned[-4:]
    return default_mask(value, 4)


def _mask_emirates_id(value: str) -> str:
    digits = clean_digits(value)
    if digits.startswith("784") and len(digits) == 15:
        return f"784-XXXX-XXXXXXX-{digits[-1]}"
    return default_mask(value, 1)


def _mask_brp(value: str) -> str:
    cleaned = clean_alnum(value).upper()
    if re.fullmatch(r"[A-Z]{2}\d{7}", cleaned):
        return f"{cleaned[:2]}XXXXXXX"
    return default_mask(value, 2)


def _mask_default(value: str) -> str:
    return default_mask(value, 4)


_LICENCE_PATTERN = re.compile(r"^[A-Z0-9]{6,}$", re.IGNORECASE)

DEFAULT_RULES: Mapping[str, MaskingRule] = MappingProxyType(
    {
        "Aadhaar": MaskingRule(
            pattern=re.compile(r"^\d{12}$"),
            mask=_mask_aadhaar,
            visible_chars=4,
        ),
        # First letter plus the last two characters stay visible.
        "Passport": MaskingRule(
            pattern=re.compile(r"^[A-Z][0-9]{7,9}$", re.IGNORECASE),
            mask=_mask_passport,
            visible_chars=3,
        ),
        "Social Security Number": MaskingRule(
            pattern=re.compile(r"^\d{3}-?\d{2}-?\d{4}$"),
            mask=_mask_ssn,
            visible_chars=4,
            preserve_format=True,
        ),
        "Driver License": MaskingRule(pattern=_LICENCE_PATTERN, mask=_mask_licence),
        "Driving Licence": MaskingRule(pattern=_LICENCE_PATTERN, mask=_mask_licence),
        "State ID": MaskingRule(pattern=_LICENCE_PATTERN, mask=_mask_licence),
        # The 784 country prefix and the check digit stay visible.
        "Emirates ID": MaskingRule(
            pattern=re.compile(r"^784-?\d{4}-?\d{7}-?\d$"),
            mask=_mask_emirates_id,
            visible_chars=4,
            preserve_format=True,
        ),
        "BRP": MaskingRule(
            pattern=re.compile(r"^[A-Z]{2}\d{7}$", re.IGNORECASE),
            mask=_mask_brp,
            visible_chars=2,
        ),
        "National ID": MaskingRule(mask=_mask_default),
        "Tax ID": MaskingRule(mask=_mask_default),
        "Unknown": MaskingRule(mask=_mask_default),
    }
)

ID_TYPE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "driving licence": "Driving Licence",
        "driver licence": "Driver License",
        "driving license": "Driver License",
        "driver license": "Driver License",
        "ssn": "Social Security Number",
        "social security": "Social Security Number",
        "national id": "National ID",
        "national identification": "National ID",
        "tax id": "Tax ID",
        "tax identification": "Tax ID",
        "emirates id": "Emirates ID",
        "uae id": "Emirates ID",
        "biometric residence permit": "BRP",
        "residence permit": "BRP",
    }
)


class MaskingRuleRegistry:
    """Mapping from normalized ID-type names to masking rules.

    A registry starts from :data:`DEFAULT_RULES` merged with ``overrides``.
    Registering a type replaces any previous rule for it entirely.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, MaskingRule]] = None,
        *,
        include_defaults: bool = True,
    ) -> None:
        self._rules: dict[str, MaskingRule] = dict(DEFAULT_RULES) if include_defaults else {}
        for id_type, rule in (overrides or {}).items():
            self.register(id_type, rule)

    def __contains__(self, id_type: object) -> bool:
        return isinstance(id_type, str) and self.get(id_type) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def names(self) -> list[str]:
        return sorted(self._rules)

    def normalize(self, id_type: Optional[str]) -> str:
        """Fold case and aliases so lookups hit the canonical registry key."""

        normalized = _WHITESPACE.sub(" ", (id_type or "").strip())
        if not normalized:
            return "Unknown"
        lower = normalized.lower()
        if lower in ID_TYPE_ALIASES:
            return ID_TYPE_ALIASES[lower]
        for name in self._rules:
            if name.lower() == lower:
                return name
        return normalized

    def get(self, id_type: Optional[str]) -> Optional[MaskingRule]:
        return self._rules.get(self.normalize(id_type))

    def register(self, id_type: str, rule: MaskingRule) -> None:
        name = self.normalize(id_type)
        if name in self._rules:
            logger.info("Overriding masking rule for id_type=%s", name)
        self._rules[name] = rule

    def mask(self, id_type: Optional[str], value: Optional[str]) -> str:
        """Return the masked form of ``value``. The raw value is never returned."""

        if not isinstance(value, str) or not value.strip():
            return PLACEHOLDER

        name = self.normalize(id_type)
        rule = self._rules.get(name)
        if rule is None:
            return default_mask(value, 4)
        try:
            masked = rule.mask(value)
        except Exception:
            logger.warning("Masking rule for id_type=%s failed; using default mask", name)
            return default_mask(value, 4)
        return masked or PLACEHOLDER

    def validate_format(self, id_type: Optional[str], value: Optional[str]) -> bool:
        """Check ``value`` against the type's detection pattern, when one exists."""

        if not isinstance(value, str) or not value:
            return False
        rule = self.get(id_type)
        if rule is None or rule.pattern is None:
            return True
        return rule.pattern.match(_WHITESPACE.sub("", value)) is not None


default_registry = MaskingRuleRegistry()


def mask_id(
    id_type: Optional[str],
    value: Optional[str],
    registry: Optional[MaskingRuleRegistry] = None,
) -> str:
    """Mask an identity number for display or storage."""

    return (registry or default_registry).mask(id_type, value)


def validate_id_format(
    id_type: Optional[str],
    value: Optional[str],
    registry: Optional[MaskingRuleRegistry] = None,
) -> bool:
    return (registry or default_registry).validate_format(id_type, value)


def register_id_type(id_type: str, rule: MaskingRule) -> None:
    """Add or replace a rule on the process-wide default registry."""

    default_registry.register(id_type, rule)


def get_masking_rule(id_type: str) -> Optional[MaskingRule]:
    return default_registry.get(id_type)


def safe_log_id(id_type: str, masked_value: str, context: Optional[str] = None) -> None:
    """Log an ID event using only its masked representation."""

    prefix = f"[{context}] " if context else ""
    logger.info("%sid_type=%s masked=%s", prefix, id_type, masked_value)


__all__ = [
    "DEFAULT_RULES",
    "ID_TYPE_ALIASES",
    "MaskingRule",
    "MaskingRuleRegistry",
    "PLACEHOLDER",
    "clean_alnum",
    "clean_digits",
    "default_mask",
    "default_registry",
    "get_masking_rule",
    "mask_id",
    "register_id_type",
    "safe_log_id",
    "validate_id_format",
]
