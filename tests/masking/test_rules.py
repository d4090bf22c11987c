"""Tests for ID masking rules and the default registry."""

from __future__ import annotations

import logging
import re

import pytest

from idmask.masking.rules import (
    DEFAULT_RULES,
    PLACEHOLDER,
    MaskingRule,
    MaskingRuleRegistry,
    default_mask,
    mask_id,
    safe_log_id,
    validate_id_format,
)


@pytest.mark.parametrize(
    ("id_type", "value", "expected"),
    [
        ("Aadhaar", "123456789012", "XXXX XXXX 9012"),
        ("Aadhaar", "1234 5678 9012", "XXXX XXXX 9012"),
        ("Passport", "P12345678", "PXXXXXX78"),
        ("Passport", "j1234567", "JXXXXX67"),
        ("Social Security Number", "123-45-6789", "XXX-XX-6789"),
        ("Social Security Number", "123456789", "XXX-XX-6789"),
        ("Emirates ID", "784-1234-5678901-2", "784-XXXX-XXXXXXX-2"),
        ("Emirates ID", "784123456789012", "784-XXXX-XXXXXXX-2"),
        ("Unknown", "987654321", "XXXXX4321"),
        ("Driver License", "D1234567", "XXXX4567"),
        ("Driving Licence", "MORGA753116SM9IJ", "XXXXXXXXXXXXM9IJ"),
        ("BRP", "ZU1234567", "ZUXXXXXXX"),
        ("Tax ID", "ABCDE1234F", "XXXXXX234F"),
    ],
)
def test_mask_id_known_formats(id_type, value, expected):
    assert mask_id(id_type, value) == expected


@pytest.mark.parametrize("value", ["", None, "   ", "\t\n"])
def test_empty_values_yield_placeholder(value):
    assert mask_id("Aadhaar", value) == PLACEHOLDER
    assert mask_id("Unknown", value) == PLACEHOLDER


def test_separator_only_value_yields_placeholder():
    assert mask_id("Social Security Number", "--- --") == PLACEHOLDER


def test_type_names_are_case_insensitive_and_alias_folded():
    assert mask_id("aadhaar", "123456789012") == "XXXX XXXX 9012"
    assert mask_id("SSN", "123-45-6789") == "XXX-XX-6789"
    assert mask_id("driving licence", "AB123456") == mask_id("Driving Licence", "AB123456")
    assert mask_id("  emirates   id ", "784-1234-5678901-2") == "784-XXXX-XXXXXXX-2"


def test_unregistered_type_uses_default_mask():
    assert mask_id("Library Card", "LIB00012345") == "XXXXXXX2345"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1", "X"),
        ("12", "X2"),
        ("123", "XX3"),
        ("1234", "XX34"),
        ("12345", "XXXX2345"),
        ("123456", "XXXX3456"),
    ],
)
def test_default_mask_never_reveals_short_values(value, expected):
    masked = default_mask(value)
    assert masked == expected
    assert masked != value


def test_default_mask_strips_separators_before_masking():
    assert default_mask("98-76-54-321") == "XXXXX4321"


def _non_mask_count(masked: str) -> int:
    return len(re.sub(r"[^A-Za-z0-9]", "", masked).replace("X", ""))


@pytest.mark.parametrize("id_type", sorted(DEFAULT_RULES))
@pytest.mark.parametrize(
    "value",
    [
        "1",
        "12",
        "1234",
        "98765",
        "123456789012",
        "P12345678",
        "784-1234-5678901-2",
        "123-45-6789",
        "ZU1234567",
        "D12345678901234",
    ],
)
def test_masking_respects_visible_character_budget(id_type, value):
    rule = DEFAULT_RULES[id_type]
    masked = mask_id(id_type, value)

    assert masked
    assert masked == mask_id(id_type, value)
    assert _non_mask_count(masked) <= max(rule.visible_chars, 1)
    if len(value) > rule.visible_chars:
        assert value not in masked


def test_registry_register_replaces_rule_entirely():
    registry = MaskingRuleRegistry()
    registry.register("aadhaar", MaskingRule(mask=lambda value: "HIDDEN", visible_chars=0))

    assert registry.mask("Aadhaar", "123456789012") == "HIDDEN"
    assert registry.get("Aadhaar").pattern is None
    assert mask_id("Aadhaar", "123456789012") == "XXXX XXXX 9012"


def test_registry_overrides_and_new_types():
    registry = MaskingRuleRegistry(
        {"Voter ID": MaskingRule(mask=lambda value: default_mask(value, 3), visible_chars=3)}
    )

    assert "voter id" in registry
    assert registry.mask("VOTER ID", "ABC1234567") == "XXXXXXX567"
    assert "Voter ID" in registry.names()
    assert len(registry) == len(DEFAULT_RULES) + 1


def test_registry_without_defaults_falls_back_to_default_mask():
    registry = MaskingRuleRegistry(include_defaults=False)

    assert len(registry) == 0
    assert registry.mask("Aadhaar", "123456789012") == "XXXXXXXX9012"


def test_failing_rule_falls_back_without_logging_the_value(caplog):
    def _broken(value: str) -> str:
        raise RuntimeError("formatter exploded")

    registry = MaskingRuleRegistry({"Broken": MaskingRule(mask=_broken)})
    with caplog.at_level(logging.WARNING, logger="idmask.masking.rules"):
        masked = registry.mask("Broken", "SECRET12345")

    assert masked == "XXXXXXX2345"
    assert "SECRET12345" not in caplog.text
    assert "Broken" in caplog.text


def test_normalize_handles_blank_and_unknown_names():
    registry = MaskingRuleRegistry()

    assert registry.normalize(None) == "Unknown"
    assert registry.normalize("   ") == "Unknown"
    assert registry.normalize("residence permit") == "BRP"
    assert registry.normalize("Library  Card") == "Library Card"


@pytest.mark.parametrize(
    ("id_type", "value", "expected"),
    [
        ("Aadhaar", "123456789012", True),
        ("Aadhaar", "1234 5678 9012", True),
        ("Aadhaar", "12345678901", False),
        ("Passport", "p1234567", True),
        ("Passport", "12345678", False),
        ("Social Security Number", "123-45-6789", True),
        ("Emirates ID", "784-1234-5678901-2", True),
        ("Emirates ID", "785-1234-5678901-2", False),
        ("BRP", "ZU1234567", True),
        ("Tax ID", "anything", True),
        ("Aadhaar", "", False),
    ],
)
def test_validate_id_format(id_type, value, expected):
    assert validate_id_format(id_type, value) is expected


def test_safe_log_id_logs_masked_value_only(caplog):
    with caplog.at_level(logging.INFO, logger="idmask.masking.rules"):
        safe_log_id("Aadhaar", "XXXX XXXX 9012", context="upload")

    assert "[upload] id_type=Aadhaar masked=XXXX XXXX 9012" in caplog.text
