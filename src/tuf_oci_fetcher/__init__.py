"""TUF OCI Fetcher - retrieve TUF metadata and targets from an OCI registry."""

__version__ = "0.1.0"

from .cache import ImageCache
from .errors import (
    ErrorKind,
    FetchError,
    InvalidPath,
    IOFailure,
    LengthExceeded,
    NotFound,
    PullFailure,
)
from .fetcher import RegistryFetcher, create_fetcher_from_env
from .manifest import TUF_FILENAME_ANNOTATION, find_file_in_manifest
from .layer_reader import read_layer
from .resolver import ResolvedPath, resolve_url_path
from .settings import Settings, create_settings_from_env

__all__ = [
    "RegistryFetcher",
    "create_fetcher_from_env",
    "ImageCache",
    "Settings",
    "create_settings_from_env",
    "ResolvedPath",
    "resolve_url_path",
    "find_file_in_manifest",
    "read_layer",
    "TUF_FILENAME_ANNOTATION",
    "ErrorKind",
    "FetchError",
    "InvalidPath",
    "PullFailure",
    "NotFound",
    "LengthExceeded",
    "IOFailure",
]
