"""
In-memory OCI registry served over httpx.MockTransport.

Speaks enough of the Distribution API for pull tests: manifests by tag or
digest, blobs by digest, and an optional bearer or basic auth challenge.
This is a test double; not for production use.
"""
from __future__ import annotations

import base64
import hashlib
import json
from typing import Dict, List, Optional, Tuple

import httpx

__all__ = ["FakeHttpRegistry"]

TOKEN = "test-token"


class FakeHttpRegistry:
    """Registry state plus the request log of every call it served."""

    def __init__(self, host: str = "localhost:5000", auth: Optional[str] = None,
                 credentials: Optional[Tuple[str, str]] = None):
        """
        Args:
            host: Registry host the references point at
            auth: None, "bearer" or "basic"
            credentials: Username/password the auth endpoint accepts
        """
        self.host = host
        self.auth = auth
        self.credentials = credentials
        self.manifests: Dict[Tuple[str, str], Tuple[bytes, str]] = {}
        self.blobs: Dict[Tuple[str, str], bytes] = {}
        self.requests: List[httpx.Request] = []
        self.token_requests: List[httpx.Request] = []

    def put_manifest(self, repo: str, ref: str, manifest: bytes, media_type: str) -> str:
        digest = f"sha256:{hashlib.sha256(manifest).hexdigest()}"
        self.manifests[(repo, ref)] = (manifest, media_type)
        self.manifests[(repo, digest)] = (manifest, media_type)
        return digest

    def put_blob(self, repo: str, digest: str, data: bytes) -> None:
        self.blobs[(repo, digest)] = data

    def transport_factory(self, timeout: float) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            return self._handle_token(request)

        self.requests.append(request)
        if not self._authorized(request):
            return httpx.Response(401, headers={"WWW-Authenticate": self._challenge()})

        path = request.url.path.removeprefix("/v2/")
        if "/manifests/" in path:
            repo, _, ref = path.partition("/manifests/")
            if (repo, ref) not in self.manifests:
                return httpx.Response(404, json={"errors": [{"code": "MANIFEST_UNKNOWN"}]})
            content, media_type = self.manifests[(repo, ref)]
            return httpx.Response(200, content=content, headers={"Content-Type": media_type})

        if "/blobs/" in path:
            repo, _, digest = path.partition("/blobs/")
            if (repo, digest) not in self.blobs:
                return httpx.Response(404, json={"errors": [{"code": "BLOB_UNKNOWN"}]})
            return httpx.Response(200, content=self.blobs[(repo, digest)])

        return httpx.Response(404)

    def _challenge(self) -> str:
        if self.auth == "basic":
            return 'Basic realm="registry"'
        return (f'Bearer realm="http://{self.host}/token",service="{self.host}",'
                f'scope="repository:tuf/metadata:pull"')

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("Authorization")
        if self.auth is None:
            return True
        if self.auth == "bearer":
            return header == f"Bearer {TOKEN}"
        return header == f"Basic {self._basic_token()}"

    def _basic_token(self) -> str:
        return base64.b64encode(":".join(self.credentials or ("", "")).encode()).decode()

    def _handle_token(self, request: httpx.Request) -> httpx.Response:
        self.token_requests.append(request)
        if self.credentials and request.headers.get("Authorization") != f"Basic {self._basic_token()}":
            return httpx.Response(401)
        return httpx.Response(200, content=json.dumps({"token": TOKEN}).encode())
