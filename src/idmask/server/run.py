"""Helper for running the idmask ASGI application."""

from __future__ import annotations

import os

import uvicorn

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _parse_port(value: str | None) -> int:
    if not value:
        return DEFAULT_PORT
    try:
        port = int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid IDMASK_SERVER_PORT '{value}': {exc}") from exc
    if not 0 < port < 65536:
        raise SystemExit("IDMASK_SERVER_PORT must be between 1 and 65535.")
    return port


def main() -> None:
    """Entry point for the `idmask-server` script."""

    host = os.environ.get("IDMASK_SERVER_HOST", DEFAULT_HOST)
    port = _parse_port(os.environ.get("IDMASK_SERVER_PORT"))
    reload_enabled = os.environ.get("RELOAD") == "1"

    # Access lines come from the app middleware.
    uvicorn.run(
        "idmask.server.app:app",
        host=host,
        port=port,
        reload=reload_enabled,
        access_log=False,
    )


if __name__ == "__main__":
    main()
