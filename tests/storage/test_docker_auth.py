"""
Tests for Docker config credential lookup.
"""
from __future__ import annotations

import base64
import json
import os

from tuf_oci_fetcher.storage.registry_client import DockerAuth


def write_config(path, auths):
    path.write_text(json.dumps({"auths": auths}))
    return path


def encoded(username, password):
    return base64.b64encode(f"{username}:{password}".encode()).decode()


class TestDockerAuth:
    """Test DockerAuth credential resolution."""

    def test_missing_config(self, tmp_path):
        auth = DockerAuth(tmp_path / "config.json")
        assert auth.get_credentials("ghcr.io") is None

    def test_base64_auth_entry(self, tmp_path):
        config = write_config(tmp_path / "config.json", {"ghcr.io": {"auth": encoded("user", "p:ss")}})

        assert DockerAuth(config).get_credentials("ghcr.io") == ("user", "p:ss")

    def test_username_password_entry(self, tmp_path):
        config = write_config(tmp_path / "config.json", {
            "https://registry.example.com": {"username": "user", "password": "pass"}
        })

        assert DockerAuth(config).get_credentials("registry.example.com") == ("user", "pass")

    def test_docker_hub_legacy_key(self, tmp_path):
        config = write_config(tmp_path / "config.json", {
            "https://index.docker.io/v1/": {"auth": encoded("hub", "secret")}
        })

        assert DockerAuth(config).get_credentials("index.docker.io") == ("hub", "secret")

    def test_unknown_registry(self, tmp_path):
        config = write_config(tmp_path / "config.json", {"ghcr.io": {"auth": encoded("user", "pass")}})

        assert DockerAuth(config).get_credentials("quay.io") is None

    def test_undecodable_auth_ignored(self, tmp_path):
        config = write_config(tmp_path / "config.json", {"ghcr.io": {"auth": "!!not-base64!!"}})

        assert DockerAuth(config).get_credentials("ghcr.io") is None

    def test_invalid_json_ignored(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text("{not json")

        assert DockerAuth(config).get_credentials("ghcr.io") is None

    def test_reloads_on_change(self, tmp_path):
        config = write_config(tmp_path / "config.json", {"ghcr.io": {"auth": encoded("old", "pass")}})
        auth = DockerAuth(config)
        assert auth.get_credentials("ghcr.io") == ("old", "pass")

        write_config(config, {"ghcr.io": {"auth": encoded("new", "pass")}})
        stat = config.stat()
        os.utime(config, (stat.st_atime, stat.st_mtime + 10))

        assert auth.get_credentials("ghcr.io") == ("new", "pass")

    def test_docker_config_env(self, tmp_path, monkeypatch):
        write_config(tmp_path / "config.json", {"ghcr.io": {"auth": encoded("env", "pass")}})
        monkeypatch.setenv("DOCKER_CONFIG", str(tmp_path))

        assert DockerAuth().get_credentials("ghcr.io") == ("env", "pass")
