"""Command-line interface for idmask."""

from __future__ import annotations

import base64
import json
import mimetypes
from pathlib import Path
from typing import Optional

import typer

from idmask.capture import CAPTURE_CONTENT_TYPE, CaptureError, capture_session
from idmask.config import get_settings
from idmask.logging_utils import configure_logging
from idmask.masking.rules import default_registry
from idmask.models.document import RedactionResult
from idmask.redaction.pipeline import DocumentRedactionService

app = typer.Typer(help="Redact identity numbers from ID document images.")

_DATA_URL_PREFIX = "data:image/jpeg;base64,"


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


def _guess_content_type(path: Path) -> Optional[str]:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type


def _write_image(result: RedactionResult, output: Path) -> None:
    data_url = result.masked_image_data_url or ""
    if not data_url.startswith(_DATA_URL_PREFIX):
        return
    output.write_bytes(base64.b64decode(data_url[len(_DATA_URL_PREFIX):]))
    typer.echo(f"Masked image written to {output}", err=True)


def _emit(result: RedactionResult, output: Optional[Path], pretty: bool) -> None:
    if output is not None:
        _write_image(result, output)
    payload = result.model_dump(mode="json", exclude={"masked_image_data_url"})
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def redact(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JPEG, PNG, or PDF file."),
    id_type: str = typer.Option(..., "--id-type", "-t", help="Declared ID type, e.g. Aadhaar."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Where to write the masked JPEG."
    ),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Override the MIME type guessed from the file name."
    ),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print result JSON."),
) -> None:
    """
    Redact the identity number on a document and print the tagged result.
    """

    _setup_logging()
    service = DocumentRedactionService()
    result = service.process(
        path.read_bytes(), content_type or _guess_content_type(path), id_type
    )
    _emit(result, output, pretty)


@app.command()
def mask(
    id_type: str = typer.Argument(..., help="Declared ID type."),
    value: str = typer.Argument(..., help="ID number to mask."),
) -> None:
    """Print the masked form of an ID number."""

    typer.echo(default_registry.mask(id_type, value))


@app.command("id-types")
def id_types() -> None:
    """List the ID types with a registered masking rule."""

    for name in default_registry.names():
        typer.echo(name)


@app.command()
def capture(
    id_type: str = typer.Option(..., "--id-type", "-t", help="Declared ID type."),
    device: Optional[int] = typer.Option(None, "--device", help="Video device index."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Where to write the masked JPEG."
    ),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print result JSON."),
) -> None:
    """Capture one frame from a camera and redact it."""

    _setup_logging()
    settings = get_settings()
    try:
        with capture_session(device if device is not None else settings.capture_device) as session:
            frame = session.capture_jpeg()
    except CaptureError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc

    result = DocumentRedactionService(settings=settings).process(
        frame, CAPTURE_CONTENT_TYPE, id_type
    )
    _emit(result, output, pretty)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the `idmask` script."""
    app(prog_name="idmask", args=argv)


if __name__ == "__main__":
    main()
