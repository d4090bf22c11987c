"""End-to-end tests for the redaction service with a stubbed recognizer."""

from __future__ import annotations

import asyncio
import re

import pytest
from prometheus_client import REGISTRY

from idmask.config import Settings
from idmask.detection.shapes import AlphaNumericPattern, IdProfile
from idmask.masking.rules import MaskingRule, MaskingRuleRegistry
from idmask.detection.validator import REVIEW_MESSAGE
from idmask.models.document import OcrResult
from idmask.redaction.pipeline import DECODE_FAILURE_MESSAGE, DocumentRedactionService


@pytest.fixture()
def aadhaar_ocr(make_word, make_ocr) -> OcrResult:
    return make_ocr(
        [
            make_word("GOVERNMENT", 20, 20),
            make_word("OF", 150, 20),
            make_word("INDIA", 180, 20),
            make_word("1234", 100, 150),
            make_word("5678", 160, 150),
            make_word("9012", 220, 150),
        ]
    )


def _service(recognizer, **settings) -> DocumentRedactionService:
    return DocumentRedactionService(settings=Settings(**settings), recognizer=recognizer)


def test_aadhaar_upload_is_redacted(aadhaar_ocr, stub_recognizer, image_bytes):
    service = _service(stub_recognizer(aadhaar_ocr))

    result = service.process(image_bytes(), "image/png", "aadhaar")

    assert result.status == "redacted"
    assert result.ok is True
    assert result.id_type == "Aadhaar"
    assert result.masked_summary == "XXXX XXXX 9012"
    assert result.boxes_masked == 1
    assert result.fallback_applied is False
    assert result.message is None
    assert result.masked_image_data_url.startswith("data:image/jpeg;base64,")


def test_raw_number_never_appears_in_the_result(aadhaar_ocr, stub_recognizer, image_bytes):
    result = _service(stub_recognizer(aadhaar_ocr)).process(image_bytes(), "image/png", "Aadhaar")

    payload = result.model_dump_json()
    assert "123456789012" not in payload
    assert "1234 5678" not in payload


def test_hint_only_passport_is_redacted_with_review_flag(make_word, make_ocr, stub_recognizer, image_bytes):
    ocr = make_ocr(
        [
            make_word("REPUBLIC", 20, 20),
            make_word("OF", 130, 20),
            make_word("INDIA", 160, 20),
            make_word("PASSPORT", 20, 60),
            make_word("NO", 130, 60),
            make_word("J1234567", 170, 60),
        ]
    )

    result = _service(stub_recognizer(ocr)).process(image_bytes(), "image/jpeg", "Passport")

    assert result.status == "review"
    assert result.ok is True
    assert result.message == REVIEW_MESSAGE
    assert result.masked_summary == "JXXXXX67"
    assert result.boxes_masked == 1


def test_unrelated_document_is_rejected(make_word, make_ocr, stub_recognizer, image_bytes):
    ocr = make_ocr([make_word("BOARDING", 20, 20), make_word("PASS", 140, 20)])

    result = _service(stub_recognizer(ocr)).process(image_bytes(), "image/png", "Passport")

    assert result.status == "rejected"
    assert result.ok is False
    assert result.message == "The uploaded file does not look like a valid Passport."
    assert result.masked_image_data_url is None


def test_unsupported_format_skips_recognition(aadhaar_ocr, stub_recognizer, image_bytes):
    recognizer = stub_recognizer(aadhaar_ocr)

    result = _service(recognizer).process(image_bytes(fmt="GIF"), "image/gif", "Aadhaar")

    assert result.status == "unsupported"
    assert "JPEG, PNG, or PDF" in result.message
    assert recognizer.sizes == []


def test_undecodable_upload_fails_with_friendly_message(aadhaar_ocr, stub_recognizer):
    result = _service(stub_recognizer(aadhaar_ocr)).process(b"not an image", "image/png", "Aadhaar")

    assert result.status == "failed"
    assert result.message == DECODE_FAILURE_MESSAGE


def test_unexpected_errors_become_failed_results(image_bytes, caplog):
    class ExplodingRecognizer:
        def recognize(self, canvas):
            raise RuntimeError("boom")

    result = _service(ExplodingRecognizer()).process(image_bytes(), "image/png", "Aadhaar")

    assert result.status == "failed"
    assert "Redaction pipeline crash" in caplog.text


def test_missing_number_falls_back_to_placeholder(make_word, make_ocr, stub_recognizer, image_bytes):
    ocr = make_ocr(
        [make_word("UIDAI", 20, 20)],
        text="UIDAI GOVERNMENT OF INDIA UNIQUE IDENTIFICATION",
    )

    result = _service(stub_recognizer(ocr)).process(image_bytes(), "image/png", "Aadhaar")

    assert result.status == "review"
    assert result.masked_summary == "XXXX XXXX XXXX"
    assert result.boxes_masked == 0
    assert result.fallback_applied is True
    assert result.masked_image_data_url is not None


def test_keyword_only_type_redacts_fallback_region(make_word, make_ocr, stub_recognizer, image_bytes):
    ocr = make_ocr([], text="INCOME TAX DEPARTMENT PERMANENT ACCOUNT NUMBER")

    result = _service(stub_recognizer(ocr)).process(image_bytes(), "image/png", "Tax ID")

    assert result.status == "review"
    assert result.masked_summary is None
    assert result.fallback_applied is True


def test_large_uploads_are_downscaled_before_recognition(aadhaar_ocr, stub_recognizer, image_bytes):
    recognizer = stub_recognizer(aadhaar_ocr)

    _service(recognizer, max_image_dimension=800).process(
        image_bytes(size=(1600, 1000)), "image/png", "Aadhaar"
    )

    assert recognizer.sizes == [(800, 500)]


def test_jobs_are_counted_by_status(aadhaar_ocr, stub_recognizer, image_bytes):
    labels = {"status": "redacted"}
    before = REGISTRY.get_sample_value("idmask_redaction_jobs_total", labels) or 0.0

    _service(stub_recognizer(aadhaar_ocr)).process(image_bytes(), "image/png", "Aadhaar")

    assert REGISTRY.get_sample_value("idmask_redaction_jobs_total", labels) == before + 1


def test_aprocess_runs_off_the_event_loop(aadhaar_ocr, stub_recognizer, image_bytes):
    service = _service(stub_recognizer(aadhaar_ocr))

    result = asyncio.run(service.aprocess(image_bytes(), "image/png", "Aadhaar"))

    assert result.status == "redacted"


def test_custom_profiles_reach_validator_and_locator(make_word, make_ocr, stub_recognizer, image_bytes):
    registry = MaskingRuleRegistry({"Voter ID": MaskingRule(mask=lambda value: "VOTER-XXXX")})
    profiles = {
        "Voter ID": IdProfile(
            shape=AlphaNumericPattern(pattern=r"[A-Z]{3}\d{7}", min_length=10, max_length=10),
            structural=re.compile(r"ELECTION COMMISSION"),
            hint=re.compile(r"ELECTION"),
            placeholder="XXXXXXXXXX",
        )
    }
    ocr = make_ocr(
        [
            make_word("ELECTION", 20, 20),
            make_word("COMMISSION", 130, 20),
            make_word("ABC1234567", 20, 80),
        ]
    )
    service = DocumentRedactionService(
        settings=Settings(),
        recognizer=stub_recognizer(ocr),
        registry=registry,
        profiles=profiles,
    )

    result = service.process(image_bytes(), "image/png", "voter id")

    assert result.status == "redacted"
    assert result.id_type == "Voter ID"
    assert result.masked_summary == "VOTER-XXXX"
    assert result.boxes_masked == 1
    assert result.fallback_applied is False
