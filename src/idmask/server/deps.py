"""Dependency definitions for the idmask API server."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from idmask.config import Settings, get_settings
from idmask.masking.rules import MaskingRuleRegistry, default_registry
from idmask.redaction.pipeline import DocumentRedactionService


def get_redaction_service(
    settings: Settings = Depends(get_settings),
) -> DocumentRedactionService:
    """Return the pipeline used by the redaction endpoint."""

    return DocumentRedactionService(settings=settings)


def get_masking_registry() -> MaskingRuleRegistry:
    return default_registry


def require_api_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    if request.query_params.get("api_token") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
