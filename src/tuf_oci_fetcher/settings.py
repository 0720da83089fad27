"""
Settings and configuration for the TUF OCI fetcher.

Centralizes configuration values and provides validation with fail-fast behavior.
Settings are static for the lifetime of a fetcher.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "DEFAULT_USER_AGENT"]

DEFAULT_USER_AGENT = "tuf-oci-fetcher/0.1.0"


def _check_repo_name(field_name: str, value: str) -> None:
    if not value:
        raise ValueError(f"{field_name} is required")
    # A port in the registry host is fine, the last path component is not
    if ":" in value.rsplit("/", 1)[-1]:
        raise ValueError(f"Invalid {field_name}: {value}. Repository name must not contain ':'")
    if value.endswith("/"):
        raise ValueError(f"Invalid {field_name}: {value}. Repository name must not end with '/'")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the registry fetcher.

    Repository Settings:
        metadata_repo: Repository holding TUF metadata, all versions under one tag
        metadata_tag: Tag of the metadata image
        targets_repo: Repository holding target files, one tag per file or subdirectory

    Registry Settings:
        user_agent: User-Agent header sent with every registry request
        registry_insecure: Allow HTTP connections for local/dev use
        registry_user: Username for registry authentication
        registry_pass: Password for registry authentication
        http_timeout_s: Connect/keep-alive timeout used by download_bytes()
        http_retry: Number of retries for timed-out requests (0=no retry)
    """
    metadata_repo: str
    targets_repo: str
    metadata_tag: str = "latest"
    user_agent: str = DEFAULT_USER_AGENT
    registry_insecure: bool = False
    registry_user: Optional[str] = None
    registry_pass: Optional[str] = None
    http_timeout_s: float = 30.0
    http_retry: int = 0

    def __post_init__(self):
        """Validate settings on construction."""
        _check_repo_name("metadata_repo", self.metadata_repo)
        _check_repo_name("targets_repo", self.targets_repo)

        if not self.metadata_tag:
            raise ValueError("metadata_tag is required")
        if ":" in self.metadata_tag or "/" in self.metadata_tag:
            raise ValueError(f"Invalid metadata_tag: {self.metadata_tag}. Tag must not contain ':' or '/'")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if self.registry_user and not self.registry_pass:
            raise ValueError("registry_user specified but registry_pass is missing")
        if self.registry_pass and not self.registry_user:
            raise ValueError("registry_pass specified but registry_user is missing")


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - TUF_OCI_METADATA_REPO (required)
        - TUF_OCI_TARGETS_REPO (required)
        - TUF_OCI_METADATA_TAG (default: latest)
        - TUF_OCI_USER_AGENT (default: tuf-oci-fetcher/<version>)
        - TUF_OCI_REGISTRY_INSECURE (default: false)
        - TUF_OCI_REGISTRY_USERNAME (optional)
        - TUF_OCI_REGISTRY_PASSWORD (optional)
        - TUF_OCI_HTTP_TIMEOUT (default: 30.0)
        - TUF_OCI_HTTP_RETRY (default: 0)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    metadata_repo = os.getenv("TUF_OCI_METADATA_REPO")
    targets_repo = os.getenv("TUF_OCI_TARGETS_REPO")

    if not metadata_repo:
        raise ValueError("TUF_OCI_METADATA_REPO environment variable is required")
    if not targets_repo:
        raise ValueError("TUF_OCI_TARGETS_REPO environment variable is required")

    return Settings(
        metadata_repo=metadata_repo,
        targets_repo=targets_repo,
        metadata_tag=os.getenv("TUF_OCI_METADATA_TAG") or "latest",
        user_agent=os.getenv("TUF_OCI_USER_AGENT") or DEFAULT_USER_AGENT,
        registry_insecure=str_to_bool(os.getenv("TUF_OCI_REGISTRY_INSECURE", "false")),
        registry_user=os.getenv("TUF_OCI_REGISTRY_USERNAME"),
        registry_pass=os.getenv("TUF_OCI_REGISTRY_PASSWORD"),
        http_timeout_s=get_float("TUF_OCI_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("TUF_OCI_HTTP_RETRY", 0),
    )
