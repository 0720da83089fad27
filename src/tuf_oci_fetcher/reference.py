"""
Image reference parsing.

Splits ``<repo>:<tag>`` strings into registry host, repository path and tag
following the Docker naming convention.
"""
from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidPath

__all__ = ["ImageReference", "parse_reference", "DEFAULT_REGISTRY"]

DEFAULT_REGISTRY = "index.docker.io"
DOCKER_HUB_API = "registry-1.docker.io"

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


@dataclass(frozen=True)
class ImageReference:
    """A pullable registry coordinate."""
    registry: str
    repository: str
    tag: str

    def __str__(self) -> str:
        return f"{self.registry}/{self.repository}:{self.tag}"

    def scheme(self, insecure: bool = False) -> str:
        """Return the URL scheme used to reach the registry."""
        host = self.registry.split(":", 1)[0]
        if insecure or host in _LOCAL_HOSTS or host.endswith(".local"):
            return "http"
        return "https"

    def base_url(self, insecure: bool = False) -> str:
        # Docker Hub serves the distribution API from a different host
        host = DOCKER_HUB_API if self.registry == DEFAULT_REGISTRY else self.registry
        return f"{self.scheme(insecure)}://{host}"


def parse_reference(ref: str) -> ImageReference:
    """
    Parse a ``<repo>:<tag>`` reference.

    Args:
        ref: Reference string, e.g. "ghcr.io/org/metadata:latest"

    Returns:
        ImageReference with registry defaulted to Docker Hub when absent

    Raises:
        InvalidPath: If the reference has no tag or no repository

    Examples:
        >>> parse_reference("localhost:5000/tuf/metadata:latest")
        ImageReference(registry='localhost:5000', repository='tuf/metadata', tag='latest')

        >>> parse_reference("metadata:latest")
        ImageReference(registry='index.docker.io', repository='library/metadata', tag='latest')
    """
    name, sep, tag = ref.rpartition(":")
    if not sep or not name or not tag or "/" in tag:
        raise InvalidPath(f"Invalid image reference: {ref}. Expected <repository>:<tag>")

    first, slash, rest = name.partition("/")
    if slash and ("." in first or ":" in first or first == "localhost"):
        registry, repository = first, rest
    else:
        registry, repository = DEFAULT_REGISTRY, name
        if "/" not in repository:
            repository = f"library/{repository}"

    if not repository:
        raise InvalidPath(f"Invalid image reference: {ref}. Repository is empty")

    return ImageReference(registry=registry, repository=repository, tag=tag)
