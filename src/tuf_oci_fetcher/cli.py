"""
TUF OCI Fetcher CLI

Implements 2 CLI verbs:
- resolve: Show the image reference and file name for a URL path (no I/O)
- fetch: Download a file from the registry to stdout or a file
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from .fetcher import create_fetcher_from_env
from .operations import run_and_exit
from .settings import create_settings_from_env
from .resolver import resolve_url_path

app = typer.Typer(name="tuf-oci-fetcher", help="Fetch TUF metadata and targets from an OCI registry")

# Default bound for ad-hoc downloads (python-tuf passes its own per file)
DEFAULT_MAX_LENGTH = 512 * 1024 * 1024


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def resolve(
    url_path: str = typer.Argument(..., help="URL path as requested by the TUF updater"),
) -> None:
    """Show the image reference and file name for a URL path."""

    def _resolve() -> None:
        settings = create_settings_from_env()
        resolved = resolve_url_path(
            url_path, settings.metadata_repo, settings.metadata_tag, settings.targets_repo
        )
        typer.echo(f"Image: {resolved.image_ref}")
        typer.echo(f"File: {resolved.file_name}")

    run_and_exit(_resolve)


@app.command()
def fetch(
    url_path: str = typer.Argument(..., help="URL path as requested by the TUF updater"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
    max_length: int = typer.Option(DEFAULT_MAX_LENGTH, "--max-length", min=0, help="Maximum file size in bytes"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Registry timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Download a file from the registry."""
    _configure_logging(verbose)

    def _fetch() -> None:
        with create_fetcher_from_env() as fetcher:
            data = fetcher.download_file_bytes(
                url_path, max_length, timeout if timeout is not None else fetcher.timeout
            )
        if output is None:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
        else:
            output.write_bytes(data)
            typer.echo(f"Wrote {len(data)} bytes to {output}", err=True)

    run_and_exit(_fetch)


def main() -> None:
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    main()
