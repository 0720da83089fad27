"""
Registry HTTP client for the OCI Distribution API.

Pulls image manifests and streams layer blobs with the Docker Registry v2 auth
flow: requests go out anonymously first and a 401 challenge is answered with
credentials from the Docker keychain, falling back to an anonymous token.
"""
from __future__ import annotations

import base64
import gzip
import io
import json
import logging
import os
import re
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterator, List, Optional, Tuple

import httpx
import zstandard
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import FetchError, IOFailure, PullFailure
from ..reference import DEFAULT_REGISTRY, ImageReference, parse_reference
from .digest import new_hasher, validate_digest

__all__ = ["DockerAuth", "RegistryPuller", "RemoteImage", "RemoteLayer"]

logger = logging.getLogger(__name__)

# OCI media types we accept for manifests (in order of preference)
ACCEPTED_MANIFEST_TYPES = [
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.oci.image.index.v1+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
]

INDEX_MEDIA_TYPES = {
    "application/vnd.oci.image.index.v1+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
}

DEFAULT_PLATFORM = ("linux", "amd64")

GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

CHUNK_SIZE = 64 * 1024

TransportFactory = Callable[[float], httpx.BaseTransport]


class DockerAuth:
    """Handle Docker Registry authentication from config files."""

    def __init__(self, config_path: Optional[Path] = None):
        if config_path is None:
            docker_config_dir = os.getenv("DOCKER_CONFIG", str(Path.home() / ".docker"))
            config_path = Path(docker_config_dir) / "config.json"
        self.config_path = config_path
        self._config_cache: Optional[dict] = None
        self._config_mtime: Optional[float] = None

    def get_credentials(self, registry: str) -> Optional[Tuple[str, str]]:
        """
        Get credentials for registry from Docker config.

        Returns: (username, password) or None if not found
        """
        config = self._load_config()
        if not config:
            return None

        auths = config.get("auths", {})

        candidates = [registry, f"https://{registry}", f"http://{registry}"]
        if registry == DEFAULT_REGISTRY:
            candidates.insert(0, "https://index.docker.io/v1/")

        auth_entry = None
        for key in candidates:
            if key in auths:
                auth_entry = auths[key]
                break
        if auth_entry is None:
            return None

        # Handle base64 encoded auth field
        if "auth" in auth_entry:
            try:
                decoded = base64.b64decode(auth_entry["auth"]).decode()
            except (ValueError, UnicodeDecodeError):
                logger.debug(f"Ignoring undecodable auth entry for {registry}")
            else:
                if ":" in decoded:
                    username, password = decoded.split(":", 1)
                    return (username, password)

        # Handle username/password fields
        if "username" in auth_entry and "password" in auth_entry:
            return (auth_entry["username"], auth_entry["password"])

        return None

    def _load_config(self) -> Optional[dict]:
        """Load Docker config with caching and mtime checking."""
        if not self.config_path.exists():
            return None

        try:
            current_mtime = self.config_path.stat().st_mtime

            # Use cached version if file hasn't changed
            if (self._config_cache is not None and
                    self._config_mtime is not None and
                    current_mtime == self._config_mtime):
                return self._config_cache

            with open(self.config_path, 'r') as f:
                config = json.load(f)

            self._config_cache = config
            self._config_mtime = current_mtime
            return config

        except (OSError, ValueError) as e:
            logger.debug(f"Failed to read Docker config {self.config_path}: {e}")
            return None


class _RegistrySession:
    """
    Authenticated request channel to one repository.

    Holds the httpx client built for a pull and the Authorization header
    obtained from the last challenge.
    """

    def __init__(self, client: httpx.Client, ref: ImageReference, *, insecure: bool,
                 credentials: Optional[Tuple[str, str]], retries: int):
        self.client = client
        self.ref = ref
        self.base_url = ref.base_url(insecure)
        self._credentials = credentials
        self._authorization: Optional[str] = None
        self._send = retry(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.TimeoutException),
            reraise=True,
        )(self._send_once)

    def request(self, path: str, *, headers: Optional[Dict[str, str]] = None,
                stream: bool = False) -> httpx.Response:
        """
        GET a registry path, answering one auth challenge if needed.

        Raises:
            PullFailure: On HTTP error status or network failure
        """
        url = f"{self.base_url}/v2/{self.ref.repository}/{path}"
        try:
            response = self._send(url, headers or {}, stream)

            if response.status_code == 401:
                challenge = response.headers.get("WWW-Authenticate", "")
                response.close()
                if self._answer_challenge(challenge):
                    response = self._send(url, headers or {}, stream)
        except httpx.RequestError as e:
            raise PullFailure(f"Network error fetching {self.ref}: {e}") from e

        if response.status_code >= 400:
            response.close()
            raise PullFailure(
                f"Registry error {response.status_code} fetching {url}",
                status_code=response.status_code,
            )
        return response

    def _send_once(self, url: str, headers: Dict[str, str], stream: bool) -> httpx.Response:
        request_headers = dict(headers)
        if self._authorization:
            request_headers["Authorization"] = self._authorization
        request = self.client.build_request("GET", url, headers=request_headers)
        return self.client.send(request, stream=stream)

    def _answer_challenge(self, challenge: str) -> bool:
        """
        Derive an Authorization header from a WWW-Authenticate challenge.

        Returns True if a header was obtained and the request should be retried.
        """
        scheme, _, params_str = challenge.partition(" ")
        params = dict(re.findall(r'(\w+)="([^"]*)"', params_str))

        if scheme.lower() == "basic":
            if not self._credentials:
                return False
            logger.debug(f"Using basic auth for {self.ref.registry}")
            token = base64.b64encode(":".join(self._credentials).encode()).decode()
            self._authorization = f"Basic {token}"
            return True

        if scheme.lower() != "bearer" or not params.get("realm"):
            return False

        query = {"scope": params.get("scope") or f"repository:{self.ref.repository}:pull"}
        if params.get("service"):
            query["service"] = params["service"]

        if self._credentials:
            logger.debug(f"Requesting bearer token for {self.ref} with keychain credentials")
        else:
            logger.debug(f"Requesting anonymous bearer token for {self.ref}")

        response = self.client.get(params["realm"], params=query, auth=self._credentials)
        if response.status_code >= 400:
            raise PullFailure(
                f"Token request failed with {response.status_code} for {self.ref}",
                status_code=response.status_code,
            )
        try:
            token_data = response.json()
        except ValueError as e:
            raise PullFailure(f"Invalid token response for {self.ref}: {e}") from e

        token = token_data.get("token") or token_data.get("access_token")
        if not token:
            return False
        self._authorization = f"Bearer {token}"
        return True

    def close(self) -> None:
        self.client.close()


class _VerifyingReader(io.RawIOBase):
    """Raw stream over response chunks that checks the digest at EOF."""

    def __init__(self, chunks: Iterator[bytes], digest: str):
        self._chunks = chunks
        self._digest = digest
        self._hasher = new_hasher(digest)
        self._pending = b""
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending and not self._eof:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._eof = True
                self._verify()
                break
            except httpx.HTTPError as e:
                raise IOFailure(f"Error reading blob {self._digest}: {e}") from e
            self._hasher.update(chunk)
            self._pending = chunk

        n = min(len(buffer), len(self._pending))
        buffer[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def _verify(self) -> None:
        actual = f"{self._digest.split(':', 1)[0]}:{self._hasher.hexdigest()}"
        if actual != self._digest:
            raise IOFailure(f"Digest mismatch: expected {self._digest}, got {actual}")


class _DecodingStream:
    """Maps decompression failures to IOFailure."""

    def __init__(self, inner: BinaryIO):
        self._inner = inner

    def read(self, size: int = -1) -> bytes:
        try:
            return self._inner.read(size)
        except FetchError:
            raise
        except (OSError, EOFError, zlib.error, zstandard.ZstdError) as e:
            raise IOFailure(f"Error decoding layer content: {e}") from e


class RemoteLayer:
    """Layer of a pulled image, fetched lazily from the registry."""

    def __init__(self, session: _RegistrySession, descriptor: dict):
        self._session = session
        self._descriptor = descriptor
        self.digest: str = descriptor["digest"]
        self.media_type: Optional[str] = descriptor.get("mediaType")

    def size(self) -> int:
        size = self._descriptor.get("size")
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            raise IOFailure(f"Layer {self.digest} has invalid size: {size!r}")
        return size

    @contextmanager
    def uncompressed(self) -> Iterator[BinaryIO]:
        """Stream the layer content, decompressing gzip and zstd blobs."""
        response = self._session.request(f"blobs/{self.digest}", stream=True)
        try:
            raw = io.BufferedReader(_VerifyingReader(response.iter_bytes(CHUNK_SIZE), self.digest))
            magic = raw.peek(len(ZSTD_MAGIC))[:len(ZSTD_MAGIC)]
            if magic.startswith(GZIP_MAGIC):
                logger.debug(f"Decompressing gzip layer {self.digest}")
                stream = gzip.GzipFile(fileobj=raw, mode="rb")
            elif magic == ZSTD_MAGIC:
                logger.debug(f"Decompressing zstd layer {self.digest}")
                stream = zstandard.ZstdDecompressor().stream_reader(raw)
            else:
                stream = raw
            yield _DecodingStream(stream)
        finally:
            response.close()


class RemoteImage:
    """Image handle holding the manifest and the connection used to pull it."""

    def __init__(self, ref: ImageReference, session: _RegistrySession, manifest: bytes):
        self.ref = ref
        self._session = session
        self._manifest = manifest

    def raw_manifest(self) -> bytes:
        return self._manifest

    def layer_by_digest(self, digest: str) -> RemoteLayer:
        if not validate_digest(digest):
            raise IOFailure(f"Invalid digest format: {digest}")
        for descriptor in self._descriptors():
            if descriptor.get("digest") == digest:
                return RemoteLayer(self._session, descriptor)
        raise IOFailure(f"Layer {digest} not found in image {self.ref}")

    def _descriptors(self) -> List[dict]:
        try:
            manifest = json.loads(self._manifest)
        except ValueError as e:
            raise IOFailure(f"Invalid JSON in manifest for {self.ref}: {e}") from e
        descriptors = list(manifest.get("layers") or [])
        if manifest.get("config"):
            descriptors.append(manifest["config"])
        return [d for d in descriptors if isinstance(d, dict)]

    def close(self) -> None:
        self._session.close()


class RegistryPuller:
    """
    Pulls image manifests over the OCI Distribution API.

    Every pull builds its own httpx client so the caller's timeout applies to
    connecting and to idle keep-alive connections of that image.
    """

    def __init__(self, *, insecure: bool = False, keychain: Optional[DockerAuth] = None,
                 transport_factory: Optional[TransportFactory] = None, retries: int = 0):
        """
        Initialize registry puller.

        Args:
            insecure: Allow HTTP for development registries
            keychain: Docker auth handler (defaults to standard Docker config)
            transport_factory: Builds the httpx transport for a timeout (tests, proxies)
            retries: Extra attempts for timed-out requests
        """
        self.insecure = insecure
        self.keychain = keychain or DockerAuth()
        self.transport_factory = transport_factory
        self.retries = retries

    def pull(self, image_ref: str, *, user_agent: str, timeout: float,
             auth: Optional[Tuple[str, str]] = None) -> RemoteImage:
        ref = parse_reference(image_ref)
        client = self._create_client(user_agent, timeout)
        credentials = auth or self.keychain.get_credentials(ref.registry)
        session = _RegistrySession(client, ref, insecure=self.insecure,
                                   credentials=credentials, retries=self.retries)
        try:
            manifest = self._fetch_manifest(session, ref.tag)
        except Exception:
            session.close()
            raise

        logger.debug(f"Pulled manifest for {ref} ({len(manifest)} bytes)")
        return RemoteImage(ref, session, manifest)

    def _create_client(self, user_agent: str, timeout: float) -> httpx.Client:
        transport = self.transport_factory(timeout) if self.transport_factory else None
        return httpx.Client(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=50,
                                keepalive_expiry=timeout),
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def _fetch_manifest(self, session: _RegistrySession, ref: str) -> bytes:
        manifest, media_type = self._get_manifest(session, ref)
        if media_type not in INDEX_MEDIA_TYPES:
            return manifest

        digest = self._select_platform(manifest, session.ref)
        logger.debug(f"Resolved image index {session.ref} to {digest}")
        manifest, media_type = self._get_manifest(session, digest)
        if media_type in INDEX_MEDIA_TYPES:
            raise IOFailure(f"Image index for {session.ref} points to another index ({digest})")
        return manifest

    @staticmethod
    def _get_manifest(session: _RegistrySession, ref: str) -> Tuple[bytes, str]:
        headers = {"Accept": ", ".join(ACCEPTED_MANIFEST_TYPES)}
        response = session.request(f"manifests/{ref}", headers=headers)
        manifest = response.content

        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        try:
            document = json.loads(manifest)
        except ValueError:
            # Parsing errors surface when the manifest is read
            return manifest, media_type
        if isinstance(document, dict) and isinstance(document.get("mediaType"), str):
            media_type = document["mediaType"]
        return manifest, media_type

    @staticmethod
    def _select_platform(index: bytes, ref: ImageReference) -> str:
        try:
            document = json.loads(index)
        except ValueError as e:
            raise IOFailure(f"Invalid JSON in image index for {ref}: {e}") from e
        manifests = document.get("manifests") if isinstance(document, dict) else None
        if not isinstance(manifests, list) or not manifests:
            raise IOFailure(f"Image index for {ref} lists no manifests")

        for entry in manifests:
            if not isinstance(entry, dict):
                raise IOFailure(f"Image index for {ref} has a malformed entry: {entry!r}")
            digest = entry.get("digest")
            if not isinstance(digest, str) or not validate_digest(digest):
                raise IOFailure(f"Image index for {ref} has an entry with invalid digest: {digest!r}")

        for entry in manifests:
            platform = entry.get("platform")
            if not isinstance(platform, dict):
                continue
            if (platform.get("os"), platform.get("architecture")) == DEFAULT_PLATFORM:
                return entry["digest"]
        return manifests[0]["digest"]
