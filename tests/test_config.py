"""Tests for configuration loading."""

import json
import os
import tempfile
from pathlib import Path

import pytest
import yaml

from cellbook.config import DEFAULT_SANDBOX_TTL_SECONDS, Config, substitute_env_vars
from cellbook.exceptions import CellbookError, ConfigError


class TestEnvSubstitution:
    """Tests for environment variable substitution."""

    def test_substitute_string(self):
        """Test substituting a string value."""
        os.environ["TEST_VAR"] = "hello"
        result = substitute_env_vars("${TEST_VAR}")
        assert result == "hello"

    def test_substitute_in_dict(self):
        """Test substituting values in a dictionary."""
        os.environ["TEST_KEY"] = "secret"
        data = {"key": "${TEST_KEY}", "other": "value"}
        result = substitute_env_vars(data)
        assert result == {"key": "secret", "other": "value"}

    def test_substitute_in_list(self):
        """Test substituting values in a list."""
        os.environ["TEST_ITEM"] = "item1"
        data = ["${TEST_ITEM}", "item2"]
        result = substitute_env_vars(data)
        assert result == ["item1", "item2"]

    def test_missing_env_var_raises(self):
        """Test that missing env vars raise ConfigError."""
        if "NONEXISTENT_VAR" in os.environ:
            del os.environ["NONEXISTENT_VAR"]
        with pytest.raises(ConfigError, match="NONEXISTENT_VAR"):
            substitute_env_vars("${NONEXISTENT_VAR}")

    def test_config_error_is_cellbook_error(self):
        """ConfigError sits under the package's error root."""
        assert issubclass(ConfigError, CellbookError)

    def test_partial_substitution(self):
        """Test substituting part of a string."""
        os.environ["PREFIX"] = "prod"
        result = substitute_env_vars("${PREFIX}-template")
        assert result == "prod-template"

    def test_non_string_values_untouched(self):
        """Numbers and booleans pass through."""
        assert substitute_env_vars({"ttl": 60, "on": True}) == {"ttl": 60, "on": True}


class TestConfigLoading:
    """Tests for configuration loading."""

    def test_from_dict(self, sample_config_dict):
        """Test loading config from dictionary."""
        config = Config.from_dict(sample_config_dict)
        assert config.sandbox.backend == "local"
        assert config.sandbox.ttl_seconds == 1800
        assert config.sandbox.limits.timeout_seconds == 5
        assert config.staging.max_lines == 100
        assert config.llm.provider == "mock"

    def test_from_yaml_file(self, sample_config_dict):
        """Test loading config from YAML file."""
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".yaml", delete=False
        ) as f:
            yaml.dump(sample_config_dict, f)
            f.flush()

            config = Config.from_file(f.name)
            assert config.sandbox.api_key == "test-key"

            Path(f.name).unlink()

    def test_from_json_file(self, sample_config_dict, tmp_path):
        """Test loading config from JSON file."""
        path = tmp_path / "cellbook.json"
        path.write_text(json.dumps(sample_config_dict))

        config = Config.from_file(path)
        assert config.execution.run_all_pause_seconds == 0

    def test_empty_yaml_file_uses_defaults(self, tmp_path):
        """An empty YAML file yields the defaults."""
        path = tmp_path / "cellbook.yaml"
        path.write_text("")

        config = Config.from_file(path)
        assert config.sandbox.backend == "e2b"

    def test_api_key_from_env(self, monkeypatch):
        """API key can be pulled from the environment."""
        monkeypatch.setenv("E2B_API_KEY", "e2b_from_env")
        config = Config.from_dict({"sandbox": {"api_key": "${E2B_API_KEY}"}})
        assert config.sandbox.api_key == "e2b_from_env"

    def test_defaults(self):
        """Test that defaults are applied."""
        config = Config.from_dict({})
        assert config.sandbox.backend == "e2b"
        assert config.sandbox.api_key is None
        assert config.sandbox.ttl_seconds == DEFAULT_SANDBOX_TTL_SECONDS == 3600
        assert config.sandbox.enforce_expiry is False
        assert config.staging.max_lines is None
        assert config.staging.tabular_extensions == [".csv"]
        assert config.execution.run_all_pause_seconds == 0.1
        assert config.llm.provider == "claude"
        assert config.server.port == 8080
        assert config.logging.level == "INFO"
        assert config.logging.format == "json"

    def test_logging_section(self):
        """Log level and format are read from the logging section."""
        config = Config.from_dict({"logging": {"level": "DEBUG", "format": "text"}})
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "text"

    def test_unknown_log_format_rejected(self):
        """Only json and text output are supported."""
        with pytest.raises(ValueError):
            Config.from_dict({"logging": {"format": "xml"}})
