"""Tests for configuration loading and logging setup."""

import pytest

from shared.errors import ConfigurationError

ENV_KEYS = (
    "API_KEY",
    "MCP_API_KEY",
    "FIRECRAWL_API_KEY",
    "MCP_FIRECRAWL_API_KEY",
    "MCP_CONFIG_PATH",
    "MCP_SERVER_PORT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate settings from the process environment and any .env file."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestLoadSettings:
    """Tests for load_settings."""

    def test_missing_api_key(self, clean_env):
        from shared.config import load_settings

        with pytest.raises(ConfigurationError, match="API_KEY environment variable must be configured"):
            load_settings()

    def test_empty_api_key(self, clean_env, monkeypatch):
        from shared.config import load_settings

        monkeypatch.setenv("API_KEY", "")

        with pytest.raises(ConfigurationError, match="API_KEY"):
            load_settings()

    def test_api_key_from_environment(self, clean_env, monkeypatch):
        from shared.config import load_settings

        monkeypatch.setenv("API_KEY", "from-env")
        monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-env")

        settings = load_settings()

        assert settings.api_key == "from-env"
        assert settings.firecrawl_api_key == "fc-env"
        assert settings.server.port == 8787

    def test_yaml_file(self, clean_env):
        from shared.config import load_settings

        config = clean_env / "settings.yaml"
        config.write_text(
            "api_key: from-yaml\n"
            "log_level: DEBUG\n"
            "server:\n"
            "  port: 9000\n"
            "  name: YAML Server\n"
            "scraper:\n"
            "  timeout_seconds: 5\n"
        )

        settings = load_settings(config)

        assert settings.api_key == "from-yaml"
        assert settings.log_level == "DEBUG"
        assert settings.server.port == 9000
        assert settings.server.name == "YAML Server"
        assert settings.scraper.timeout_seconds == 5

    def test_config_path_from_environment(self, clean_env, monkeypatch):
        from shared.config import load_settings

        config = clean_env / "custom.yaml"
        config.write_text("api_key: custom\n")
        monkeypatch.setenv("MCP_CONFIG_PATH", str(config))

        assert load_settings().api_key == "custom"

    def test_overrides_win(self, clean_env, monkeypatch):
        from shared.config import load_settings

        monkeypatch.setenv("API_KEY", "from-env")

        assert load_settings(api_key="override").api_key == "override"

    def test_invalid_value(self, clean_env):
        from shared.config import load_settings

        config = clean_env / "settings.yaml"
        config.write_text("api_key: ok\nscraper:\n  timeout_seconds: 0\n")

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_settings(config)

    def test_missing_file_is_empty(self, clean_env):
        from shared.config import load_yaml_config

        assert load_yaml_config(clean_env / "absent.yaml") == {}


class TestLogging:
    """Tests for structured logging helpers."""

    def test_secrets_redacted(self):
        from shared.logging import redact_secrets

        event = redact_secrets(None, "info", {
            "event": "Request",
            "api_key": "secret",
            "Authorization": "Bearer secret",
            "tool": "add",
            "token": None,
        })

        assert event["api_key"] == "[REDACTED]"
        assert event["Authorization"] == "[REDACTED]"
        assert event["tool"] == "add"
        assert event["token"] is None

    def test_query_key_masked_in_strings(self):
        from shared.logging import mask_query_secrets, redact_secrets

        assert mask_query_secrets("/sse?api_key=abc&x=1") == "/sse?api_key=[REDACTED]&x=1"

        event = redact_secrets(None, "info", {"event": "Opened", "path": "/sse?API_KEY=abc"})

        assert "abc" not in event["path"]

    def test_access_log_filter(self):
        import logging

        from shared.logging import QuerySecretFilter

        record = logging.LogRecord(
            "uvicorn.access", logging.INFO, __file__, 1,
            '%s - "%s %s HTTP/%s" %d',
            ("127.0.0.1:5000", "GET", "/sse?api_key=secret", "1.1", 200),
            None,
        )

        assert QuerySecretFilter().filter(record)
        assert "secret" not in record.getMessage()
        assert "api_key=[REDACTED]" in record.getMessage()

    def test_setup_logging_installs_filter_once(self):
        import logging

        from shared.logging import QuerySecretFilter, get_logger, setup_logging

        setup_logging("DEBUG", json_output=True)
        setup_logging("INFO")
        logger = get_logger("tests", component="config")
        logger.info("Logging configured", api_key="hidden")

        filters = [
            f for f in logging.getLogger("uvicorn.access").filters
            if isinstance(f, QuerySecretFilter)
        ]
        assert len(filters) == 1
