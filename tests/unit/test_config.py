"""
Unit tests for the configuration system.

Tests the layered configuration loading:
1. Default values
2. YAML config file overrides
3. Environment variable overrides
"""
import os
import pytest
from datetime import timedelta
from unittest.mock import patch


CONFIG_YML = """
llm:
  model_name: local-model
  smalltalk_temperature: 0.4
rag:
  similarity_floor: 0.3
analytics:
  widen_days: 45
storage:
  db_path: /tmp/yaml.db
cors:
  allowed_origins:
    - https://a.example.com
    - https://b.example.com
auth:
  api_tokens:
    tok-a: user-a
user:
  timezone_offset_hours: 2
features:
  private_mode: false
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(CONFIG_YML)
    return path


class TestConfigHelpers:
    """Tests for configuration helper functions."""

    def test_get_nested_none_value(self):
        """Test nested access returns default for None values."""
        from logchat.core.config import _get_nested

        d = {"a": {"b": None}}
        assert _get_nested(d, "a", "b", default="default") == "default"

    def test_env_var_takes_precedence(self):
        """Test that environment variables override YAML config."""
        from logchat.core.config import _env_or_yaml

        yaml_config = {"section": {"key": "yaml_value"}}

        with patch.dict(os.environ, {"TEST_KEY": "env_value"}):
            assert _env_or_yaml("TEST_KEY", yaml_config, "section", "key", default="d") == "env_value"

    @pytest.mark.parametrize("value,expected", [
        ("true", True), ("1", True), ("YES", True), (True, True),
        ("false", False), ("0", False), ("", False), (False, False),
    ])
    def test_as_bool(self, value, expected):
        from logchat.core.config import _as_bool

        assert _as_bool(value) is expected

    def test_as_list(self):
        """Comma separated env values and YAML lists both become lists."""
        from logchat.core.config import _as_list

        assert _as_list("https://a.com, https://b.com,") == ["https://a.com", "https://b.com"]
        assert _as_list(["x", " y "]) == ["x", "y"]
        assert _as_list(None) == []

    def test_parse_token_map(self):
        from logchat.core.config import _parse_token_map

        assert _parse_token_map("t1:u1, t2:u2") == {"t1": "u1", "t2": "u2"}
        assert _parse_token_map("broken, t3:u3") == {"t3": "u3"}
        assert _parse_token_map({"t4": "u4"}) == {"t4": "u4"}


class TestLoadSettings:
    """Tests for load_settings layering."""

    def test_defaults(self, tmp_path):
        """Test defaults when neither config.yml nor env vars exist."""
        from logchat.core.config import load_settings

        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings(tmp_path / "missing.yml")

        assert settings.rag.similarity_floor == 0.2
        assert settings.rag.min_match_count == 12
        assert settings.analytics.default_days == 7
        assert settings.cors.allowed_origins == ["*"]
        assert settings.private_mode is False
        assert settings.features.external_embeddings is False
        assert settings.user_timezone.utcoffset(None) == timedelta(0)

    def test_yaml_overrides_defaults(self, config_file):
        """Test that config.yml values override defaults."""
        from logchat.core.config import load_settings

        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings(config_file)

        assert settings.llm.model_name == "local-model"
        assert settings.llm.smalltalk_temperature == 0.4
        assert settings.rag.similarity_floor == 0.3
        assert settings.analytics.widen_days == 45
        assert str(settings.storage.db_path) == "/tmp/yaml.db"
        assert settings.cors.allowed_origins == ["https://a.example.com", "https://b.example.com"]
        assert settings.auth.api_tokens == {"tok-a": "user-a"}
        assert settings.user_timezone.utcoffset(None) == timedelta(hours=2)

    def test_env_overrides_yaml(self, config_file):
        """Test that environment variables override config.yml."""
        from logchat.core.config import load_settings

        env = {
            "LLM_MODEL_NAME": "env-model",
            "LOGCHAT_PRIVATE_MODE": "true",
            "ALLOWED_ORIGINS": "https://c.example.com",
            "LOGCHAT_API_TOKENS": "tok-b:user-b",
            "LOGCHAT_TIMEZONE_OFFSET": "-5",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings(config_file)

        assert settings.llm.model_name == "env-model"
        assert settings.private_mode is True
        assert settings.cors.allowed_origins == ["https://c.example.com"]
        assert settings.auth.api_tokens == {"tok-b": "user-b"}
        assert settings.user_timezone.utcoffset(None) == timedelta(hours=-5)

    def test_embeddings_fall_back_to_llm_endpoint(self, tmp_path):
        from logchat.core.config import load_settings

        with patch.dict(os.environ, {"LLM_BASE_URL": "http://localhost:8080/v1"}, clear=True):
            settings = load_settings(tmp_path / "missing.yml")

        assert settings.embeddings.base_url == "http://localhost:8080/v1"

    def test_settings_are_frozen(self, tmp_path):
        from logchat.core.config import load_settings

        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings(tmp_path / "missing.yml")

        with pytest.raises(Exception):
            settings.rag.similarity_floor = 0.0


class TestConfigSource:
    """Tests for get_config_source."""

    def test_env_source(self):
        from logchat.core.config import get_config_source

        with patch.dict(os.environ, {"LLM_MODEL_NAME": "x"}):
            assert get_config_source("llm.model_name", "LLM_MODEL_NAME") == "env"

    def test_default_source(self, tmp_path):
        from logchat.core import config

        with patch.dict(os.environ, {}, clear=True), patch.object(config, "PROJECT_ROOT", tmp_path):
            assert config.get_config_source("llm.model_name", "LLM_MODEL_NAME") == "default"

    def test_yaml_source(self, config_file):
        from logchat.core import config

        with patch.dict(os.environ, {}, clear=True), \
                patch.object(config, "PROJECT_ROOT", config_file.parent):
            assert config.get_config_source("rag.similarity_floor") == "yaml"
