"""Root pytest configuration for tuf-oci-fetcher tests."""
import pytest

from tuf_oci_fetcher.cache import ImageCache
from tuf_oci_fetcher.fetcher import RegistryFetcher
from tuf_oci_fetcher.settings import Settings

from .fakes.fake_registry import FakeImage, FakePuller

METADATA_REPO = "localhost:5000/tuf/metadata"
TARGETS_REPO = "localhost:5000/tuf/targets"


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires a registry)"
    )


# Set up test environment variables
@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Automatically set up test environment variables."""
    monkeypatch.setenv("TUF_OCI_METADATA_REPO", METADATA_REPO)
    monkeypatch.setenv("TUF_OCI_TARGETS_REPO", TARGETS_REPO)
    monkeypatch.setenv("TUF_OCI_REGISTRY_INSECURE", "true")
    # Keep the developer's Docker credentials out of tests
    monkeypatch.setenv("DOCKER_CONFIG", str(tmp_path / "docker"))


# Standardized test fixtures
@pytest.fixture
def settings():
    """Standard test settings."""
    return Settings(
        metadata_repo=METADATA_REPO,
        targets_repo=TARGETS_REPO,
        metadata_tag="latest",
        registry_insecure=True,
    )


@pytest.fixture
def puller():
    """Counting fake puller."""
    return FakePuller()


@pytest.fixture
def metadata_image(puller):
    """Metadata image with root, timestamp and snapshot metadata."""
    return puller.add_image(
        f"{METADATA_REPO}:latest",
        FakeImage.from_files({
            "1.root.json": b'{"signed": {"_type": "root", "version": 1}}',
            "2.root.json": b'{"signed": {"_type": "root", "version": 2}}',
            "timestamp.json": b'{"signed": {"_type": "timestamp"}}',
            "1.snapshot.json": b'{"signed": {"_type": "snapshot"}}',
        }),
    )


@pytest.fixture
def fetcher(settings, puller):
    """Registry fetcher backed by the fake puller."""
    return RegistryFetcher(settings, puller=puller, cache=ImageCache())
