"""Unit tests for workcouncil.config.loader module."""

from pathlib import Path

import pytest
import yaml

from workcouncil.config.loader import load_config, load_config_or_default, resolve_api_key
from workcouncil.config.models import BackendConfig
from workcouncil.core.errors import ConfigError


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary config file with valid content."""
    config_path = tmp_path / "config.yaml"
    config_content = {
        "backends": {
            "openai": {
                "kind": "strict_schema",
                "model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            },
        },
        "security": {"allowed_domains": ["github.com", "gitlab.com"]},
        "session": {"backend_timeout": 30, "session_timeout": 90},
    }
    with config_path.open("w") as f:
        yaml.dump(config_content, f)
    return config_path


class TestLoadConfig:
    def test_loads_valid_file(self, temp_config_file: Path) -> None:
        config = load_config(temp_config_file)

        assert list(config.backends) == ["openai"]
        assert config.backends["openai"].model == "gpt-4o-mini"
        assert config.security.allowed_domains == ("github.com", "gitlab.com")
        assert config.session.backend_timeout == 30

    def test_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "missing.yaml"

        with pytest.raises(ConfigError, match="not found") as exc_info:
            load_config(path)

        assert exc_info.value.config_file == str(path)

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")

        config = load_config(path)

        assert "anthropic" in config.backends

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("backends: [unclosed")

        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(path)

    def test_non_mapping_top_level(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- one\n- two\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_validation_errors_are_formatted(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("consensus:\n  threshold: 2.0\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)

        assert "consensus.threshold" in exc_info.value.message
        assert "validation_errors" in exc_info.value.details


class TestLoadConfigOrDefault:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config_or_default(tmp_path / "missing.yaml")

        assert set(config.backends) == {"openai", "anthropic", "google", "xai"}

    def test_existing_file_is_loaded(self, temp_config_file: Path) -> None:
        config = load_config_or_default(temp_config_file)

        assert list(config.backends) == ["openai"]


class TestResolveApiKey:
    def test_reads_configured_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_KEY", "sk-abc")
        backend = BackendConfig(model="gpt-4o", api_key_env="MY_KEY")

        assert resolve_api_key("openai", backend) == "sk-abc"

    def test_unset_returns_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_KEY", raising=False)
        backend = BackendConfig(model="gpt-4o", api_key_env="MY_KEY")

        assert resolve_api_key("openai", backend) is None

    def test_no_variable_configured(self) -> None:
        assert resolve_api_key("openai", BackendConfig(model="gpt-4o")) is None

    def test_required_key_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_KEY", raising=False)
        backend = BackendConfig(model="gpt-4o", api_key_env="MY_KEY")

        with pytest.raises(ConfigError) as exc_info:
            resolve_api_key("openai", backend, required=True)

        assert exc_info.value.config_key == "backends.openai.api_key_env"
