"""Configuration management for the MCP gateway.

Supports YAML configuration files and environment variable overrides.
The server API key is required; a missing key is a startup-fatal
ConfigurationError raised before any request is served.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError

API_KEY_ALIASES = frozenset({"api_key", "mcp_api_key"})


class ServerSettings(BaseSettings):
    """HTTP server and MCP identity configuration."""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8787)
    name: str = Field(default="Flink MCP Server")
    version: str = Field(default="1.0.0")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(
        env_prefix="MCP_SERVER_",
        env_file=".env",
        extra="ignore"
    )


class ScraperSettings(BaseSettings):
    """Outbound HTTP settings for the web tools."""
    timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = Field(default="Mozilla/5.0 (compatible; MCP-Scraper/1.0)")
    analyzer_user_agent: str = Field(default="Mozilla/5.0 (compatible; MCP-Analyzer/1.0)")
    follow_redirects: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="SCRAPER_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Secrets
    api_key: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("api_key", "API_KEY", "MCP_API_KEY"),
        description="Shared secret required on every protected request"
    )
    firecrawl_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("firecrawl_api_key", "FIRECRAWL_API_KEY", "MCP_FIRECRAWL_API_KEY"),
    )

    # Component settings
    server: ServerSettings = Field(default_factory=ServerSettings)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True
    )

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> "Settings":
        """Load settings from a YAML file, falling back to the environment."""
        data = load_yaml_config(path)
        data.update(overrides)
        return cls(**data)


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> Settings:
    """
    Load settings from YAML and the environment.

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    if config_path is None:
        config_path = os.environ.get("MCP_CONFIG_PATH", "config/settings.yaml")
    try:
        return Settings.from_yaml(config_path, **overrides)
    except ValidationError as e:
        failed_fields = {str(err["loc"][0]).lower() for err in e.errors() if err["loc"]}
        if failed_fields & API_KEY_ALIASES:
            raise ConfigurationError(
                "API_KEY environment variable must be configured"
            ) from e
        raise ConfigurationError(f"Invalid configuration: {e}") from e

