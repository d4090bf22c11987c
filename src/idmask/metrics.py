"""Prometheus metrics definitions for idmask."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "idmask_http_requests_total",
    "Total number of HTTP requests processed by the idmask API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "idmask_http_request_duration_seconds",
    "Latency of HTTP requests processed by the idmask API",
    ["method", "path"],
)

REDACTION_JOBS = Counter(
    "idmask_redaction_jobs_total",
    "Number of document redaction jobs executed by status",
    ["status"],
)

VALIDATIONS = Counter(
    "idmask_validations_total",
    "Content validation outcomes by declared ID type",
    ["id_type", "status"],
)

FALLBACK_REDACTIONS = Counter(
    "idmask_fallback_redactions_total",
    "Number of documents redacted with the generic fallback region",
    ["id_type"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "REDACTION_JOBS",
    "VALIDATIONS",
    "FALLBACK_REDACTIONS",
]
