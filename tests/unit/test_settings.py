"""Tests for scully.config.settings."""

import pytest

from scully.config.settings import DEFAULT_PACKAGE_LIST_URL, Settings, load_settings
from scully.models import DocumentationSource


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.cache.enabled
        assert settings.cache.ttl_seconds == 3600
        assert settings.network.resource_timeout == 60.0
        assert settings.network.request_timeout == 30.0
        assert settings.package_index.url == DEFAULT_PACKAGE_LIST_URL
        assert settings.preferred_sources == [DocumentationSource.README, DocumentationSource.DOCC]

    def test_clone_cache_defaults_under_cache_dir(self, tmp_path):
        settings = Settings()
        settings.cache.directory = str(tmp_path)

        assert settings.clone_cache_path == tmp_path / "clones"

    def test_from_yaml_expands_env_vars(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SCULLY_TEST_TOKEN", "abc123")
        config = tmp_path / "scully.yaml"
        config.write_text(
            "cache:\n"
            "  ttl_seconds: 60\n"
            "github:\n"
            "  token: ${SCULLY_TEST_TOKEN}\n"
            "  use_gh_cli: false\n"
            "preferred_sources:\n"
            "  - docc\n"
            "  - unknown\n"
            "  - README\n"
        )

        settings = Settings.from_yaml(str(config))

        assert settings.cache.ttl_seconds == 60
        assert settings.github.token == "abc123"
        assert settings.github.use_gh_cli is False
        assert settings.preferred_sources == [DocumentationSource.DOCC, DocumentationSource.README]

    def test_empty_yaml_gives_defaults(self, tmp_path):
        config = tmp_path / "scully.yaml"
        config.write_text("")

        assert Settings.from_yaml(str(config)) == Settings()

    def test_unknown_key_is_rejected(self):
        with pytest.raises(TypeError):
            Settings.from_dict({"cache": {"bogus": 1}})


class TestEnvOverrides:
    """Tests for Settings.apply_env_overrides()."""

    def test_overrides(self):
        settings = Settings().apply_env_overrides({
            "SCULLY_CACHE_ENABLED": "false",
            "SCULLY_CACHE_TTL": "120",
            "SCULLY_MAX_CONCURRENT_REQUESTS": "0",
            "GITHUB_TOKEN": "tok",
        })

        assert settings.cache.enabled is False
        assert settings.cache.ttl_seconds == 120
        assert settings.network.max_concurrent_requests == 1
        assert settings.github.token == "tok"

    def test_invalid_numbers_are_ignored(self):
        settings = Settings().apply_env_overrides({"SCULLY_CACHE_TTL": "soon"})
        assert settings.cache.ttl_seconds == 3600

    def test_configured_token_wins(self):
        settings = Settings()
        settings.github.token = "from-config"

        settings.apply_env_overrides({"GH_TOKEN": "from-env"})

        assert settings.github.token == "from-config"


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "missing.yaml"))

    def test_working_directory_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("SCULLY_CACHE_TTL", raising=False)
        (tmp_path / "scully.yaml").write_text("cache:\n  ttl_seconds: 5\n")

        assert load_settings().cache.ttl_seconds == 5
