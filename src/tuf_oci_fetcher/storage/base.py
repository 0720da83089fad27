"""
Registry interfaces for the TUF OCI fetcher.

These protocols define the boundary between the fetch pipeline and the
registry transport, enabling clean dependency injection and testing with fakes.
"""
from __future__ import annotations

from typing import BinaryIO, ContextManager, Optional, Protocol, runtime_checkable

__all__ = ["RegistryLayer", "RegistryImage", "ImagePuller"]


@runtime_checkable
class RegistryLayer(Protocol):
    """A single content-addressed layer of a pulled image."""

    def size(self) -> int:
        """
        Declared size of the layer in bytes.

        This is the size recorded in the manifest descriptor and may differ
        from the uncompressed length; it must not be trusted alone.

        Raises:
            IOFailure: If the size cannot be determined
        """
        ...

    def uncompressed(self) -> ContextManager[BinaryIO]:
        """
        Open the uncompressed layer content.

        Returns:
            Context manager yielding a readable binary stream

        Raises:
            PullFailure: If the blob cannot be fetched
            IOFailure: If the content cannot be decoded
        """
        ...


@runtime_checkable
class RegistryImage(Protocol):
    """A pulled image handle."""

    def raw_manifest(self) -> bytes:
        """Return the raw manifest JSON bytes."""
        ...

    def layer_by_digest(self, digest: str) -> RegistryLayer:
        """
        Look up a layer by its content digest.

        Raises:
            IOFailure: If no layer with that digest is in the manifest
        """
        ...

    def close(self) -> None:
        """Release any connections held by the handle."""
        ...


@runtime_checkable
class ImagePuller(Protocol):
    """Pull an image by reference."""

    def pull(
        self,
        image_ref: str,
        *,
        user_agent: str,
        timeout: float,
        auth: Optional[tuple[str, str]] = None,
    ) -> RegistryImage:
        """
        Pull the image manifest for a reference.

        Args:
            image_ref: "<repository>:<tag>" reference
            user_agent: User-Agent header value
            timeout: Connect and keep-alive timeout in seconds
            auth: Explicit (username, password); keychain lookup when None

        Returns:
            Pulled image handle

        Raises:
            PullFailure: If the registry request fails
            InvalidPath: If the reference cannot be parsed
        """
        ...
