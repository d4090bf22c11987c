"""Logging setup that keeps secrets and raw ID numbers out of every log line."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Iterable, Pattern, Sequence

REDACTED = "[redacted]"

# (pattern, replacement) pairs applied in order to every rendered message.
_CREDENTIAL_RULES: tuple[tuple[Pattern[str], str], ...] = (
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-._~+/=]+)", re.IGNORECASE), r"\1" + REDACTED),
    (re.compile(r"(api_token=)([^&\s]+)", re.IGNORECASE), r"\1" + REDACTED),
    (re.compile(r"(X-API-Key[=:]\s*)([^&\s]+)", re.IGNORECASE), r"\1" + REDACTED),
)
# Nine or more digits, optionally grouped by spaces or dashes, and letter-prefixed
# passport numbers. Masked forms contain X runs and never match.
_ID_NUMBER_RULES: tuple[tuple[Pattern[str], str], ...] = (
    (re.compile(r"(?<![\d.])(?:\d[ -]?){8,}\d(?![\d.])"), REDACTED),
    (re.compile(r"\b[A-Z]\d{7,9}\b"), REDACTED),
)

# request_id values are uuid hex and can hold long digit runs.
_UNTOUCHED_ATTRIBUTES = frozenset(
    {
        "msg",
        "args",
        "levelname",
        "name",
        "pathname",
        "filename",
        "module",
        "funcName",
        "request_id",
    }
)
_NOISY_LOGGERS = ("PIL", "multipart", "python_multipart")


def redact_text(value: str, secrets: Sequence[str] = ()) -> str:
    """Return ``value`` with credentials, configured secrets and ID numbers replaced."""

    for pattern, replacement in _CREDENTIAL_RULES + _ID_NUMBER_RULES:
        value = pattern.sub(replacement, value)
    for secret in secrets:
        value = value.replace(secret, REDACTED)
    return value


class SensitiveDataFilter(logging.Filter):
    """Rewrite records so neither the message nor string extras leak sensitive data."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self._secrets = [secret.strip() for secret in secrets if secret and secret.strip()]

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard interface
        message = record.getMessage()
        sanitized = redact_text(message, self._secrets)
        if sanitized != message:
            record.msg = sanitized
            record.args = ()

        for key, value in list(vars(record).items()):
            if key in _UNTOUCHED_ATTRIBUTES or not isinstance(value, str):
                continue
            setattr(record, key, redact_text(value, self._secrets))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; request and ID-type context included when present."""

    context_fields = ("request_id", "id_type")

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.context_fields:
            if value := getattr(record, field, None):
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=True)


def _build_formatter(fmt: str) -> logging.Formatter:
    if (fmt or "plain").lower() == "json":
        return JsonFormatter()
    return logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str]) -> None:
    """Install a single redacting root handler and route uvicorn logs through it."""

    level = getattr(logging, level_name.upper(), logging.INFO)
    redactor = SensitiveDataFilter(secrets)

    handler = logging.StreamHandler()
    handler.setFormatter(_build_formatter(fmt))
    handler.addFilter(redactor)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    logging.captureWarnings(True)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.setLevel(level)
        server_logger.propagate = True
        server_logger.addFilter(redactor)

    # Image decoders log every chunk at DEBUG.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
