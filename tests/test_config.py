"""
Tests for layered configuration loading.
"""

import logging

import pytest

from morphos.config import MorphosConfig, load_config
from morphos.errors import ConfigError
from morphos.generation.client import DEFAULT_MODEL
from morphos.pipeline.session import inprocess_runner, isolated_runner


def _write(tmp_path, text):
    path = tmp_path / "morphos.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:

    def test_defaults(self):
        """Without file or environment the built-in values apply."""
        config = load_config(environ={})
        assert config == MorphosConfig()
        budget = config.budget()
        assert budget.timeout_seconds == 10.0
        assert budget.max_call_depth == 64
        assert config.retry_ceiling == 2

    def test_generation_client(self):
        """The client is built from the configured values."""
        config = MorphosConfig(api_key="k", model="gemini-2.5-pro", rate_limit_calls=3)
        client = config.generation_client()
        assert client.model == "gemini-2.5-pro"
        assert client.rate_limiter.max_calls == 3

    def test_no_rate_limit_by_default(self):
        assert MorphosConfig().generation_client().rate_limiter is None


class TestFile:

    def test_yaml_values(self, tmp_path):
        """Values from the file are coerced to their field types."""
        path = _write(tmp_path, "timeout_seconds: 5\nmax_steps: '1000'\nisolated: yes\nmodel: gemini-2.5-pro\n")
        config = load_config(path, environ={})
        assert config.timeout_seconds == 5.0
        assert config.max_steps == 1000
        assert config.isolated is True
        assert config.model == "gemini-2.5-pro"

    def test_empty_file(self, tmp_path):
        """An empty file means defaults."""
        assert load_config(_write(tmp_path, ""), environ={}) == MorphosConfig()

    def test_unknown_key(self, tmp_path):
        """Misspelled keys are reported."""
        with pytest.raises(ConfigError, match="timeout"):
            load_config(_write(tmp_path, "timeout: 5\n"), environ={})

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(_write(tmp_path, "a: [1, 2\n"), environ={})

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="mapping"):
            load_config(_write(tmp_path, "- 1\n- 2\n"), environ={})

    def test_bad_value(self, tmp_path):
        with pytest.raises(ConfigError, match="max_steps"):
            load_config(_write(tmp_path, "max_steps: many\n"), environ={})

    def test_fractional_int(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "max_call_depth: 2.5\n"), environ={})

    def test_non_positive_budget(self, tmp_path):
        """Budget limits must be positive."""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "timeout_seconds: 0\n"), environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(tmp_path / "absent.yaml", environ={})


class TestEnvironment:

    def test_api_key(self):
        """MORPHOS_API_KEY wins over GEMINI_API_KEY."""
        assert load_config(environ={"GEMINI_API_KEY": "g"}).api_key == "g"
        config = load_config(environ={"GEMINI_API_KEY": "g", "MORPHOS_API_KEY": "m"})
        assert config.api_key == "m"

    def test_environment_overrides_file(self, tmp_path):
        path = _write(tmp_path, "timeout_seconds: 5\n")
        config = load_config(path, environ={"MORPHOS_TIMEOUT": "2.5"})
        assert config.timeout_seconds == 2.5

    def test_base_url(self):
        config = load_config(environ={"MORPHOS_BASE_URL": "http://localhost:8080/v1"})
        assert config.base_url == "http://localhost:8080/v1"

    def test_unknown_model_falls_back(self, caplog):
        """An unknown model name falls back to the default with a warning."""
        with caplog.at_level(logging.WARNING, logger="morphos.config"):
            config = load_config(environ={"MORPHOS_MODEL": "gpt-imaginary"})
        assert config.model == DEFAULT_MODEL
        assert "gpt-imaginary" in caplog.text

    def test_bad_timeout(self):
        with pytest.raises(ConfigError):
            load_config(environ={"MORPHOS_TIMEOUT": "soon"})

    def test_retry_ceiling(self, tmp_path):
        with pytest.raises(ConfigError, match="retry_ceiling"):
            load_config(_write(tmp_path, "retry_ceiling: 0\n"), environ={})


class TestFieldTypes:
    """Coercion follows the declared field types."""

    def test_optional_int(self, tmp_path):
        config = load_config(_write(tmp_path, "rate_limit_calls: '3'\n"), environ={})
        assert config.rate_limit_calls == 3
        assert load_config(_write(tmp_path, "rate_limit_calls: null\n"), environ={}).rate_limit_calls is None

    def test_optional_str(self, tmp_path):
        """Numeric-looking keys stay strings."""
        assert load_config(_write(tmp_path, "api_key: 12345\n"), environ={}).api_key == "12345"

    def test_required_field_not_empty(self, tmp_path):
        with pytest.raises(ConfigError, match="model must not be empty"):
            load_config(_write(tmp_path, "model: null\n"), environ={})

    def test_float_field_accepts_int(self, tmp_path):
        config = load_config(_write(tmp_path, "debounce_seconds: 1\n"), environ={})
        assert isinstance(config.debounce_seconds, float)


class TestSession:
    """Sessions built from the configuration."""

    def test_debounce_and_budget(self, tmp_path):
        config = load_config(_write(tmp_path, "debounce_seconds: 0.5\ntimeout_seconds: 4\n"), environ={})
        session = config.session()
        assert session.debounce == 0.5
        assert session.budget.timeout_seconds == 4.0
        assert session.runner is inprocess_runner

    def test_isolated_runner(self):
        assert MorphosConfig(isolated=True).session().runner is isolated_runner

    def test_negative_debounce(self, tmp_path):
        with pytest.raises(ConfigError, match="debounce_seconds"):
            load_config(_write(tmp_path, "debounce_seconds: -1\n"), environ={})
