"""CLI entrypoint for developer tools."""

from __future__ import annotations

import typer

from .doctor import run_doctor

app = typer.Typer(help="Developer diagnostics for the idmask OCR toolchain.")


@app.callback()
def _root() -> None:
    """Developer diagnostics for the idmask OCR toolchain."""


@app.command()
def doctor() -> None:
    """Check that Tesseract, Poppler, and the Python OCR packages are available."""

    exit_code, report = run_doctor()
    typer.echo(report)
    raise typer.Exit(code=exit_code)


def main() -> None:
    """Execute the Typer application."""

    app()
