"""
OCI helpers for tests.

Builds image manifests whose layers carry the tuf.io/filename annotation,
the way a TUF image publisher lays them out.
"""
from __future__ import annotations

import hashlib
import json
from typing import Dict, List, Optional

OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_GENERIC_LAYER = "application/octet-stream"
OCI_EMPTY_CONFIG = "application/vnd.oci.empty.v1+json"
OCI_EMPTY_CONFIG_DIGEST = "sha256:44136fa355b3678a1146ad16f7e8649e94fb4fc21fe77e8310c060f61caaff8a"


def sha256_digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def layer_descriptor(
    blob: bytes,
    file_name: Optional[str] = None,
    *,
    size: Optional[int] = None,
    digest: Optional[str] = None,
    media_type: str = OCI_GENERIC_LAYER,
) -> Dict:
    """Create a layer descriptor, optionally lying about size or digest."""
    descriptor = {
        "mediaType": media_type,
        "digest": digest or sha256_digest(blob),
        "size": len(blob) if size is None else size,
    }
    if file_name is not None:
        descriptor["annotations"] = {"tuf.io/filename": file_name}
    return descriptor


def image_manifest(layers: List[Dict]) -> bytes:
    """Serialize an OCI image manifest with an empty config."""
    manifest = {
        "schemaVersion": 2,
        "mediaType": OCI_IMAGE_MANIFEST,
        "config": {
            "mediaType": OCI_EMPTY_CONFIG,
            "digest": OCI_EMPTY_CONFIG_DIGEST,
            "size": 2,
        },
        "layers": layers,
    }
    return json.dumps(manifest, sort_keys=True, separators=(',', ':')).encode()
