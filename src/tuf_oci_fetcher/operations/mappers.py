"""
Error mapping and CLI utilities.

Provides the tables translating fetch errors into python-tuf download errors
and CLI exit codes, so failures are never turned into protocol signals at the
point where they are raised.
"""
from __future__ import annotations

from typing import Callable, Dict, TypeVar

import typer
from tuf.api.exceptions import DownloadError, DownloadHTTPError, DownloadLengthMismatchError

from ..errors import ErrorKind, FetchError

T = TypeVar('T')


def _pull_failure(exc: FetchError) -> DownloadError:
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return DownloadHTTPError(str(exc), status_code)
    return DownloadError(str(exc))


# Error kind -> python-tuf exception factory
TUF_ERRORS: Dict[ErrorKind, Callable[[FetchError], DownloadError]] = {
    ErrorKind.INVALID_PATH: lambda exc: DownloadError(str(exc)),
    ErrorKind.PULL_FAILURE: _pull_failure,
    ErrorKind.NOT_FOUND: lambda exc: DownloadHTTPError(str(exc), 404),
    ErrorKind.LENGTH_EXCEEDED: lambda exc: DownloadLengthMismatchError(str(exc)),
    ErrorKind.IO_FAILURE: lambda exc: DownloadError(str(exc)),
}


def to_tuf_error(exc: FetchError) -> DownloadError:
    """
    Translate a fetch error into the exception python-tuf expects.

    A missing file becomes an HTTP 404 so the updater handles it exactly
    like a missing resource on a plain HTTP mirror.

    Args:
        exc: Fetch error to translate

    Returns:
        python-tuf DownloadError (or subclass) with ``exc`` as its cause
    """
    error = TUF_ERRORS[exc.kind](exc)
    error.__cause__ = exc
    return error


# Exit code mapping
EXIT_CODES = {
    "NotFound": 1,
    "InvalidPath": 2,
    "ValueError": 2,
    "PullFailure": 3,
    "LengthExceeded": 4,
    "IOFailure": 5,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 1: File not found in image (NotFound)
    - 2: Invalid path or configuration (InvalidPath, ValueError)
    - 3: Registry pull failure (PullFailure) or unknown error
    - 4: Content larger than allowed (LengthExceeded)
    - 5: Read or parse failure (IOFailure)
    """
    return EXIT_CODES.get(type(exc).__name__, 3)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit.

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
