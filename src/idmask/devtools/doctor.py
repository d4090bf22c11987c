"""Environment diagnostics for the OCR and PDF toolchain."""

from __future__ import annotations

import importlib.util
import platform
import shutil
import sys
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Iterable, Literal, Optional, Sequence

Status = Literal["ok", "warn", "fail"]

Which = Callable[[str], Optional[str]]
LanguageLister = Callable[[], Iterable[str]]


@dataclass(frozen=True)
class CheckResult:
    """Outcome of an environment check."""

    name: str
    status: Status
    message: str


def _check_python() -> CheckResult:
    version = platform.python_version()
    if sys.version_info < (3, 11):
        return CheckResult(
            name="Python",
            status="fail",
            message=f"Detected {version}. Install Python 3.11 or newer.",
        )
    return CheckResult(name="Python", status="ok", message=f"Detected {version}")


def _check_python_package(package: str, friendly_name: str | None = None) -> CheckResult:
    label = friendly_name or package
    if importlib.util.find_spec(package) is not None:
        return CheckResult(name=f"Python package: {label}", status="ok", message="available")
    return CheckResult(
        name=f"Python package: {label}",
        status="warn",
        message=f"Install with `pip install {label}`.",
    )


def _check_command(
    label: str,
    candidates: Sequence[str],
    *,
    required: bool,
    hint: str,
    which: Which = shutil.which,
) -> CheckResult:
    for candidate in candidates:
        if which(candidate):
            return CheckResult(name=label, status="ok", message=f"found `{candidate}`")
    return CheckResult(
        name=label,
        status="fail" if required else "warn",
        message=f"None of {', '.join(candidates)} found on PATH. {hint}",
    )


def _installed_languages() -> list[str]:
    import pytesseract

    return list(pytesseract.get_languages(config=""))


def _check_ocr_language(lang: str, languages: LanguageLister) -> CheckResult:
    name = f"Tesseract language: {lang}"
    try:
        available = set(languages())
    except Exception as exc:
        return CheckResult(name=name, status="warn", message=f"Could not list languages ({exc}).")
    missing = [code for code in lang.split("+") if code not in available]
    if missing:
        return CheckResult(
            name=name,
            status="fail",
            message=f"Missing traineddata for {', '.join(missing)}.",
        )
    return CheckResult(name=name, status="ok", message="installed")


def collect_checks(
    which: Which = shutil.which,
    languages: Optional[LanguageLister] = None,
    lang: Optional[str] = None,
) -> list[CheckResult]:
    tesseract = _check_command(
        "Tesseract OCR",
        ["tesseract"],
        required=True,
        hint="Install tesseract-ocr; OCR returns empty results without it.",
        which=which,
    )
    checks = [
        _check_python(),
        _check_python_package("pytesseract"),
        _check_python_package("pdf2image"),
        _check_python_package("cv2", "opencv-python-headless"),
        tesseract,
        _check_command(
            "Poppler (PDF rendering)",
            ["pdftoppm", "pdftocairo"],
            required=False,
            hint="Install poppler-utils to accept PDF uploads.",
            which=which,
        ),
    ]
    # Language data can only be listed once the binary is present.
    if tesseract.status == "ok":
        if lang is None:
            from idmask.config import get_settings

            lang = get_settings().ocr_default_lang
        checks.append(_check_ocr_language(lang, languages or _installed_languages))
    return checks


def format_report(results: Iterable[CheckResult]) -> str:
    """Render a human-readable report."""

    icon = {"ok": "✓", "warn": "⚠", "fail": "✖"}
    lines: list[str] = []
    counts: Counter[str] = Counter()
    for result in results:
        counts[result.status] += 1
        lines.append(f"{icon[result.status]} {result.name}: {result.message}")
    lines.append("")
    lines.append(
        f"Summary: {counts['ok']} ok · {counts['warn']} warning(s) · {counts['fail']} failure(s)"
    )
    return "\n".join(lines)


def run_doctor(
    which: Which = shutil.which,
    languages: Optional[LanguageLister] = None,
    lang: Optional[str] = None,
) -> tuple[int, str]:
    """Execute diagnostics and return (exit_code, report)."""

    checks = collect_checks(which=which, languages=languages, lang=lang)
    exit_code = 1 if any(result.status == "fail" for result in checks) else 0
    return exit_code, format_report(checks)
