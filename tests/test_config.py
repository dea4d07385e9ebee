"""Tests for daxformatter.core.config: configuration management."""

import logging

import pytest

from daxformatter.core.config import (
    DaxFormatterConfig,
    GatewayConfig,
    LoggingConfig,
    ServiceConfig,
)

_ENV_VARS = (
    "DAXFMT_SERVICE_URL",
    "DAXFMT_TIMEOUT_SEC",
    "DAXFMT_MAX_RETRIES",
    "DAXFMT_BATCH_FALLBACK",
    "DAXFMT_TOOL_RESPONSE_MAX_CHARS",
    "DAXFMT_TOOL_CALL_WARN_MS",
    "DAXFMT_LOG_LEVEL",
    "DAXFMT_LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDaxFormatterConfigDefaults:
    def test_from_env_defaults(self):
        config = DaxFormatterConfig.from_env()
        assert config.service.base_url == "https://www.daxformatter.com"
        assert config.service.timeout == 30.0
        assert config.service.max_retries == 0
        assert config.gateway.server_name == "dax-formatter-mcp"
        assert config.gateway.batch_fallback is True
        assert config.gateway.tool_response_max_chars == 100_000
        assert config.gateway.tool_call_warn_ms == 20_000.0
        assert config.logging.level == "INFO"
        assert config.logging.file is None

    def test_model_defaults_match_env_defaults(self):
        assert DaxFormatterConfig() == DaxFormatterConfig.from_env()


class TestEnvironmentOverrides:
    def test_values_are_read(self, monkeypatch):
        monkeypatch.setenv("DAXFMT_SERVICE_URL", "http://localhost:8080")
        monkeypatch.setenv("DAXFMT_TIMEOUT_SEC", "5.5")
        monkeypatch.setenv("DAXFMT_MAX_RETRIES", "2")
        monkeypatch.setenv("DAXFMT_TOOL_RESPONSE_MAX_CHARS", "4096")
        monkeypatch.setenv("DAXFMT_TOOL_CALL_WARN_MS", "1500")
        monkeypatch.setenv("DAXFMT_LOG_LEVEL", "debug")
        monkeypatch.setenv("DAXFMT_LOG_FILE", "/tmp/daxformatter.log")

        config = DaxFormatterConfig.from_env()

        assert config.service == ServiceConfig(base_url="http://localhost:8080", timeout=5.5, max_retries=2)
        assert config.gateway.tool_response_max_chars == 4096
        assert config.gateway.tool_call_warn_ms == 1500.0
        assert config.logging == LoggingConfig(level="DEBUG", file="/tmp/daxformatter.log")

    @pytest.mark.parametrize("raw", ["0", "false", "No", "OFF"])
    def test_batch_fallback_can_be_disabled(self, monkeypatch, raw):
        monkeypatch.setenv("DAXFMT_BATCH_FALLBACK", raw)
        assert DaxFormatterConfig.from_env().gateway.batch_fallback is False

    @pytest.mark.parametrize(
        "name,raw",
        [
            ("DAXFMT_TIMEOUT_SEC", "soon"),
            ("DAXFMT_TIMEOUT_SEC", "-1"),
            ("DAXFMT_TIMEOUT_SEC", "nan"),
            ("DAXFMT_MAX_RETRIES", "-3"),
            ("DAXFMT_TOOL_RESPONSE_MAX_CHARS", "10"),
        ],
    )
    def test_invalid_values_keep_defaults(self, monkeypatch, caplog, name, raw):
        monkeypatch.setenv(name, raw)

        with caplog.at_level(logging.WARNING, logger="DaxFormatter.Config"):
            config = DaxFormatterConfig.from_env()

        assert config == DaxFormatterConfig()
        assert name in caplog.text

    def test_empty_log_file_means_stderr(self, monkeypatch):
        monkeypatch.setenv("DAXFMT_LOG_FILE", "")
        assert DaxFormatterConfig.from_env().logging.file is None


class TestYamlConfig:
    def test_from_yaml_nested_sections(self, tmp_path):
        path = tmp_path / "daxformatter.yaml"
        path.write_text(
            "service:\n"
            "  base_url: http://formatter.internal\n"
            "  timeout: 12\n"
            "gateway:\n"
            "  batch_fallback: false\n"
            "logging:\n"
            "  level: WARNING\n",
            encoding="utf-8",
        )

        config = DaxFormatterConfig.from_yaml(str(path))

        assert config.service.base_url == "http://formatter.internal"
        assert config.service.timeout == 12.0
        assert config.service.max_retries == 0
        assert config.gateway == GatewayConfig(batch_fallback=False)
        assert config.logging.level == "WARNING"

    def test_from_yaml_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert DaxFormatterConfig.from_yaml(str(path)) == DaxFormatterConfig()

    def test_from_yaml_missing_file_falls_back_to_env(self, tmp_path, monkeypatch, caplog):
        monkeypatch.setenv("DAXFMT_MAX_RETRIES", "4")

        with caplog.at_level(logging.WARNING, logger="DaxFormatter.Config"):
            config = DaxFormatterConfig.from_yaml(str(tmp_path / "missing.yaml"))

        assert config.service.max_retries == 4
        assert "Config file not found" in caplog.text

    def test_from_yaml_rejects_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- service\n- gateway\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            DaxFormatterConfig.from_yaml(str(path))


class TestServiceUrlValidation:
    @pytest.mark.parametrize("url", ["formatter.test", "ftp://formatter.test", "http://"])
    def test_invalid_url_is_rejected(self, url):
        with pytest.raises(ValueError):
            ServiceConfig(base_url=url)

    def test_assignment_is_validated(self):
        config = DaxFormatterConfig()
        with pytest.raises(ValueError):
            config.service.base_url = "not a url"
        assert config.service.base_url == "https://www.daxformatter.com"
