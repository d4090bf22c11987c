"""ASGI application for idmask."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from idmask import __version__, metrics
from idmask.config import Settings, get_settings
from idmask.logging_utils import configure_logging as configure_app_logging
from idmask.masking.rules import MaskingRuleRegistry
from idmask.models.document import RedactionResult
from idmask.redaction.pipeline import DocumentRedactionService
from idmask.server import deps

logger = logging.getLogger(__name__)

STATUS_CODES: dict[str, int] = {
    "redacted": status.HTTP_200_OK,
    "review": status.HTTP_200_OK,
    "rejected": status.HTTP_400_BAD_REQUEST,
    "unsupported": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class MaskRequest(BaseModel):
    id_type: str = Field(min_length=1, max_length=64)
    value: str = Field(max_length=256)


class MaskResponse(BaseModel):
    id_type: str
    masked: str


class IdTypesResponse(BaseModel):
    id_types: list[str]


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        return f"<{len(value)} bytes>"
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # Echoed inputs may be raw ID numbers.
    return [
        {key: _json_safe(value) for key, value in error.items() if key != "input"}
        for error in errors
    ]


def _configure_logging(settings: Settings) -> None:
    configure_app_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


def _route_label(request: Request) -> str:
    # Label by route template rather than the raw path.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _observe(method: str, path: str, status_code: int, duration_ms: float) -> None:
    metrics.REQUEST_COUNT.labels(method=method, path=path, status=str(status_code)).inc()
    metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)


def _install_request_logging(application: FastAPI) -> None:
    """Attach access logging, request IDs, and request metrics."""

    access_logger = logging.getLogger("idmask.access")

    @application.middleware("http")
    async def log_request_response(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        start = perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            duration_ms = (perf_counter() - start) * 1000
            access_logger.exception(
                "HTTP %s %s status=500 duration_ms=%.2f",
                request.method,
                request.url.path,
                duration_ms,
                extra={"request_id": request_id},
            )
            _observe(request.method, _route_label(request), 500, duration_ms)
            raise

        duration_ms = (perf_counter() - start) * 1000
        response.headers.setdefault("X-Request-ID", request_id)
        access_logger.info(
            "HTTP %s %s status=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"request_id": request_id},
        )
        _observe(request.method, _route_label(request), response.status_code, duration_ms)
        return response


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="idmask", version=__version__)
    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        _install_request_logging(application)

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = _normalize_validation_errors(exc.errors())
        log_kwargs: dict[str, Any] = {}
        if request_id := getattr(request.state, "request_id", None):
            log_kwargs["extra"] = {"request_id": request_id}
        logger.warning(
            "Validation error on %s %s: %s", request.method, request.url.path, errors, **log_kwargs
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @application.get("/healthz", include_in_schema=False)
    def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @application.get(
        "/id-types",
        response_model=IdTypesResponse,
        summary="List supported ID types",
    )
    def id_types(
        registry: MaskingRuleRegistry = Depends(deps.get_masking_registry),
    ) -> IdTypesResponse:
        return IdTypesResponse(id_types=registry.names())

    @application.post(
        "/ids/mask",
        response_model=MaskResponse,
        summary="Mask an ID number string",
    )
    def ids_mask(
        payload: MaskRequest,
        auth: None = Depends(deps.require_api_token),
        registry: MaskingRuleRegistry = Depends(deps.get_masking_registry),
    ) -> MaskResponse:
        return MaskResponse(
            id_type=registry.normalize(payload.id_type),
            masked=registry.mask(payload.id_type, payload.value),
        )

    @application.post(
        "/documents/redact",
        response_model=RedactionResult,
        summary="Redact the ID number on an uploaded document",
        responses={
            400: {"model": RedactionResult},
            415: {"model": RedactionResult},
            422: {"model": RedactionResult},
        },
    )
    async def documents_redact(
        file: UploadFile = File(...),
        id_type: str = Form(..., min_length=1, max_length=64),
        auth: None = Depends(deps.require_api_token),
        service: DocumentRedactionService = Depends(deps.get_redaction_service),
        settings: Settings = Depends(get_settings),
    ) -> JSONResponse:
        content = await file.read()
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty."
            )
        if len(content) > settings.max_upload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Document exceeds {settings.max_upload_bytes // (1024 * 1024)} MiB limit.",
            )
        result = await service.aprocess(content, file.content_type, id_type)
        logger.debug(
            "Processed upload size=%s content_type=%s status=%s",
            len(content),
            file.content_type,
            result.status,
        )
        return JSONResponse(
            status_code=STATUS_CODES.get(result.status, status.HTTP_200_OK),
            content=result.model_dump(),
        )

    return application


app = create_app()

__all__ = ["app", "create_app"]
