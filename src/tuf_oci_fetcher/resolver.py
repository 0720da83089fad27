"""
URL path resolution.

Maps the URL paths python-tuf asks for onto registry coordinates. Matching is
substring based on the configured repository names, so names must be
unambiguous relative to the paths in use.
"""
from __future__ import annotations

import posixpath
from dataclasses import dataclass

from .errors import InvalidPath

__all__ = ["ResolvedPath", "resolve_url_path"]


@dataclass(frozen=True)
class ResolvedPath:
    """Image reference and layer file name for one URL path."""
    image_ref: str
    file_name: str


def resolve_url_path(
    url_path: str,
    metadata_repo: str,
    metadata_tag: str,
    targets_repo: str,
) -> ResolvedPath:
    """
    Resolve a URL path to an image reference and file name.

    Targets are checked first:
        <targets_repo>/<file>           -> <targets_repo>:<file>,   file = <file>
        <targets_repo>/<subdir>/<file>  -> <targets_repo>:<subdir>, file = <file>
    Metadata collapses every version under one tag:
        .../<metadata_repo>/.../<file>  -> <metadata_repo>:<metadata_tag>, file = basename

    Args:
        url_path: URL path requested by the updater
        metadata_repo: Metadata repository name
        metadata_tag: Tag holding all metadata files
        targets_repo: Targets repository name

    Returns:
        ResolvedPath with image reference and file name

    Raises:
        InvalidPath: If the path is in neither repository
    """
    if targets_repo in url_path:
        target = url_path.removeprefix(targets_repo + "/")
        subdir, sep, name = target.partition("/")
        if sep:
            return ResolvedPath(image_ref=f"{targets_repo}:{subdir}", file_name=name)
        return ResolvedPath(image_ref=f"{targets_repo}:{target}", file_name=target)

    if metadata_repo in url_path:
        return ResolvedPath(
            image_ref=f"{metadata_repo}:{metadata_tag}",
            file_name=posixpath.basename(url_path),
        )

    raise InvalidPath(f"urlPath: {url_path} must be in metadata or targets repo")
