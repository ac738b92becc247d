"""Tests for runtime settings — env-driven via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from clusterforge.config import DEFAULT_CATALOG_URL, ForgeSettings


class TestForgeSettings:
    def test_defaults(self):
        config = ForgeSettings(_env_file=None)
        assert config.log_level == "INFO"
        assert config.catalog_url == DEFAULT_CATALOG_URL
        assert config.java_home is None
        assert config.keep_ephemeral is False
        assert config.start_timeout_seconds == 120.0

    def test_prefixed_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setenv("CLUSTERFORGE_CACHE_ROOT", str(tmp_path))
        monkeypatch.setenv("CLUSTERFORGE_KEEP_EPHEMERAL", "true")
        config = ForgeSettings(_env_file=None)
        assert config.cache_root == tmp_path
        assert config.keep_ephemeral is True

    def test_plain_java_home_honoured(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setenv("JAVA_HOME", str(tmp_path / "jdk"))
        assert ForgeSettings(_env_file=None).java_home == tmp_path / "jdk"

    def test_prefixed_java_home_wins(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setenv("JAVA_HOME", str(tmp_path / "system"))
        monkeypatch.setenv("CLUSTERFORGE_JAVA_HOME", str(tmp_path / "forge"))
        assert ForgeSettings(_env_file=None).java_home == tmp_path / "forge"

    def test_java_home_by_field_name(self, tmp_path: Path):
        assert ForgeSettings(_env_file=None, java_home=tmp_path).java_home == tmp_path

    def test_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("CLUSTERFORGE_CATALOG_URL=https://mirror.test/v1/\n", encoding="utf-8")
        assert ForgeSettings(_env_file=env_file).catalog_url == "https://mirror.test/v1/"
