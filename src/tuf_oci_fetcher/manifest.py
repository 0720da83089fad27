"""
Manifest layer lookup.

Image producers record the TUF file name of every individually fetchable layer
in the ``tuf.io/filename`` annotation. This module finds the layer for a name.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import IOFailure, NotFound
from .storage.base import RegistryImage
from .storage.digest import validate_digest

__all__ = ["TUF_FILENAME_ANNOTATION", "ManifestLayer", "ImageManifest", "find_file_in_manifest"]

logger = logging.getLogger(__name__)

TUF_FILENAME_ANNOTATION = "tuf.io/filename"


class ManifestLayer(BaseModel):
    """Layer descriptor as recorded in an image manifest."""
    digest: str = Field(..., description="Content digest of the layer blob")
    size: Optional[int] = Field(default=None, description="Declared blob size in bytes")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    annotations: Dict[str, str] = Field(default_factory=dict)

    @field_validator("annotations", mode="before")
    @classmethod
    def empty_when_null(cls, value):
        return {} if value is None else value

    @property
    def file_name(self) -> Optional[str]:
        return self.annotations.get(TUF_FILENAME_ANNOTATION)


class ImageManifest(BaseModel):
    """The subset of an OCI image manifest needed to locate files."""
    layers: List[ManifestLayer] = Field(default_factory=list)

    @field_validator("layers", mode="before")
    @classmethod
    def no_layers_when_null(cls, value):
        return [] if value is None else value

    @classmethod
    def from_bytes(cls, raw: bytes) -> ImageManifest:
        """
        Parse raw manifest bytes.

        Raises:
            IOFailure: If the manifest is not valid JSON or has malformed layers
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise IOFailure(f"Invalid image manifest: {e}") from e


def find_file_in_manifest(image: RegistryImage, file_name: str) -> str:
    """
    Search the image manifest for a layer holding a file.

    The first layer whose ``tuf.io/filename`` annotation equals ``file_name``
    exactly wins; manifest order is authoritative.

    Args:
        image: Pulled image handle
        file_name: File name to look for

    Returns:
        Layer digest

    Raises:
        NotFound: If no layer carries the file name
        IOFailure: If the manifest cannot be read or the digest is malformed
    """
    manifest = ImageManifest.from_bytes(image.raw_manifest())

    for layer in manifest.layers:
        if layer.file_name == file_name:
            if not validate_digest(layer.digest):
                raise IOFailure(f"Invalid digest format for {file_name}: {layer.digest}")
            logger.debug(f"Found {file_name} in layer {layer.digest}")
            return layer.digest

    raise NotFound(f"file {file_name} not found in image")
