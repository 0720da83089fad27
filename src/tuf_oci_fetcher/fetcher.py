"""
Registry fetcher.

A python-tuf fetcher that serves TUF metadata and target files out of OCI
images: the URL path is resolved to an image reference and file name, the
image is pulled once per reference, the layer annotated with the file name is
located in the manifest and its content is read under the caller's bound.
"""
from __future__ import annotations

import logging
import tempfile
import threading
from contextlib import contextmanager
from typing import IO, Dict, Iterator, Optional

from tuf.ngclient.fetcher import FetcherInterface

from .cache import ImageCache
from .errors import FetchError
from .layer_reader import iter_layer, read_layer
from .manifest import find_file_in_manifest
from .operations.mappers import to_tuf_error
from .resolver import ResolvedPath, resolve_url_path
from .settings import Settings, create_settings_from_env
from .storage.base import ImagePuller, RegistryImage
from .storage.registry_client import RegistryPuller

__all__ = ["RegistryFetcher", "create_fetcher_from_env"]

logger = logging.getLogger(__name__)


class RegistryFetcher(FetcherInterface):
    """
    python-tuf Fetcher that retrieves files from an OCI registry.

    Each fetcher owns its image cache. Pulls are single-flight per image
    reference: concurrent callers asking for the same reference wait for the
    one pull in progress instead of pulling again.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        puller: Optional[ImagePuller] = None,
        cache: Optional[ImageCache[RegistryImage]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            settings: Repository names, tag and registry configuration
            puller: Registry puller (defaults to the httpx RegistryPuller)
            cache: Image cache owned by this fetcher (defaults to a new one)
            timeout: Timeout used by the python-tuf entry points
                (defaults to settings.http_timeout_s)
        """
        self.settings = settings
        self.timeout = timeout if timeout is not None else settings.http_timeout_s
        self._puller = puller or RegistryPuller(
            insecure=settings.registry_insecure,
            retries=settings.http_retry,
        )
        self._cache: ImageCache[RegistryImage] = cache if cache is not None else ImageCache()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def resolve(self, url_path: str) -> ResolvedPath:
        """Resolve a URL path against the configured repositories."""
        return resolve_url_path(
            url_path,
            self.settings.metadata_repo,
            self.settings.metadata_tag,
            self.settings.targets_repo,
        )

    def download_file_bytes(self, url_path: str, max_length: int, timeout: float) -> bytes:
        """
        Download a file from the registry.

        Args:
            url_path: URL path of the file
            max_length: Maximum number of bytes accepted
            timeout: Connect and keep-alive timeout for a pull, in seconds

        Returns:
            The complete file content

        Raises:
            InvalidPath: If the path is in neither repository
            PullFailure: If the image cannot be pulled
            NotFound: If no layer holds the file
            LengthExceeded: If the file is larger than ``max_length``
            IOFailure: If the manifest or layer cannot be read
        """
        resolved = self.resolve(url_path)
        image = self._get_image(resolved.image_ref, timeout)
        digest = find_file_in_manifest(image, resolved.file_name)
        return read_layer(image, digest, max_length)

    def _get_image(self, image_ref: str, timeout: float) -> RegistryImage:
        """Return the cached image for a reference, pulling it on a miss."""
        image, found = self._cache.get(image_ref)
        if found:
            logger.debug(f"Image cache hit for {image_ref}")
            return image

        with self._lock_for(image_ref):
            # Another caller may have pulled while we waited
            image, found = self._cache.get(image_ref)
            if found:
                logger.debug(f"Image cache hit for {image_ref} after wait")
                return image

            logger.debug(f"Pulling {image_ref} (timeout {timeout}s)")
            image = self._puller.pull(
                image_ref,
                user_agent=self.settings.user_agent,
                timeout=timeout,
                auth=self._explicit_auth(),
            )
            self._cache.put(image_ref, image)
            return image

    def _lock_for(self, image_ref: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(image_ref, threading.Lock())

    def _explicit_auth(self) -> Optional[tuple[str, str]]:
        if self.settings.registry_user and self.settings.registry_pass:
            return (self.settings.registry_user, self.settings.registry_pass)
        return None

    # python-tuf FetcherInterface

    def _fetch(self, url: str) -> Iterator[bytes]:
        """Stream a file without a length bound; the caller enforces one."""
        try:
            resolved = self.resolve(url)
            image = self._get_image(resolved.image_ref, self.timeout)
            digest = find_file_in_manifest(image, resolved.file_name)
        except FetchError as e:
            raise to_tuf_error(e) from e
        return self._translate_errors(iter_layer(image, digest))

    @staticmethod
    def _translate_errors(chunks: Iterator[bytes]) -> Iterator[bytes]:
        try:
            yield from chunks
        except FetchError as e:
            raise to_tuf_error(e) from e

    def download_bytes(self, url: str, max_length: int) -> bytes:
        """Download a file as bytes, raising python-tuf download errors."""
        try:
            return self.download_file_bytes(url, max_length, self.timeout)
        except FetchError as e:
            raise to_tuf_error(e) from e

    @contextmanager
    def download_file(self, url: str, max_length: int) -> Iterator[IO]:
        """Download a file into a temporary file object."""
        data = self.download_bytes(url, max_length)
        with tempfile.TemporaryFile() as temp_file:
            temp_file.write(data)
            temp_file.seek(0)
            yield temp_file

    def close(self) -> None:
        """Release the connections held by cached images and drop them from the cache."""
        images = self._cache.images()
        self._cache.clear()
        for image in images:
            image.close()

    def __enter__(self) -> RegistryFetcher:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_fetcher_from_env() -> RegistryFetcher:
    """
    Create a registry fetcher from environment variables.

    Returns:
        RegistryFetcher configured via create_settings_from_env()

    Raises:
        ValueError: If configuration is invalid or required values missing
    """
    return RegistryFetcher(create_settings_from_env())
