"""ID masking rules and helpers."""

from .rules import (
    DEFAULT_RULES,
    MaskingRule,
    MaskingRuleRegistry,
    default_mask,
    default_registry,
    get_masking_rule,
    mask_id,
    register_id_type,
    safe_log_id,
    validate_id_format,
)

__all__ = [
    "DEFAULT_RULES",
    "MaskingRule",
    "MaskingRuleRegistry",
    "default_mask",
    "default_registry",
    "get_masking_rule",
    "mask_id",
    "register_id_type",
    "safe_log_id",
    "validate_id_format",
]
