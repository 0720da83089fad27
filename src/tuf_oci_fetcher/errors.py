"""
Fetch error classes.

Provides a clear taxonomy of the failures a registry fetch can produce.
Each error carries an ``ErrorKind`` tag so protocol layers (python-tuf,
the CLI) can translate failures through a single mapping table instead of
inspecting messages.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Tag identifying the kind of a fetch failure."""
    INVALID_PATH = "InvalidPath"
    PULL_FAILURE = "PullFailure"
    NOT_FOUND = "NotFound"
    LENGTH_EXCEEDED = "LengthExceeded"
    IO_FAILURE = "IOFailure"


class FetchError(Exception):
    """
    Base class for all fetch errors.

    Subclasses pin ``kind``; no error is retried inside the fetcher, retry
    policy belongs to the calling update client.
    """
    kind: ErrorKind = ErrorKind.IO_FAILURE


class InvalidPath(FetchError):
    """
    URL path belongs to neither the metadata nor the targets repository.

    Raised when:
    - The path does not contain either configured repository name
    - An image reference cannot be parsed into repository and tag
    """
    kind = ErrorKind.INVALID_PATH


class PullFailure(FetchError):
    """
    Registry pull failed.

    Raised when:
    - The registry answers with an HTTP error (401, 403, 404, 5xx)
    - The connection fails or times out

    ``status_code`` holds the HTTP status when the registry produced one.
    """
    kind = ErrorKind.PULL_FAILURE

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFound(FetchError):
    """
    No layer in the image manifest carries the requested file name.

    Surfaced to python-tuf as an HTTP 404 so the updater treats it like any
    other missing resource.
    """
    kind = ErrorKind.NOT_FOUND


class LengthExceeded(FetchError):
    """
    Declared or actual layer size is larger than the caller's bound.

    The partial payload is always discarded.
    """
    kind = ErrorKind.LENGTH_EXCEEDED

    def __init__(self, length: int, max_length: int):
        super().__init__(
            f"download failed, length {length} is larger than expected {max_length}"
        )
        self.length = length
        self.max_length = max_length


class IOFailure(FetchError):
    """
    Any other read or parse failure.

    Raised when:
    - The manifest is not valid JSON or does not describe layers
    - A layer digest is malformed
    - The layer stream fails or its content does not match its digest
    """
    kind = ErrorKind.IO_FAILURE


__all__ = [
    "ErrorKind",
    "FetchError",
    "InvalidPath",
    "PullFailure",
    "NotFound",
    "LengthExceeded",
    "IOFailure",
]
