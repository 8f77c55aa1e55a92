"""
Settings for cfgbind itself.

Read from ``CFGBIND_*`` environment variables (and a ``.env`` file in the
working directory). They steer how the process-wide loader finds the
application's config and seed the cfgbind CLI's logging defaults; they are
not the application's config.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CfgBindSettings(BaseSettings):
    """Loader settings.

    ``CFGBIND_CONFIG_FILE=/etc/app.yaml`` points the loader at an explicit
    file instead of searching the home and current directories.
    """

    model_config = SettingsConfigDict(
        env_prefix="CFGBIND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_file: str = Field(default="", description="Explicit config file path")
    app_name: str = Field(default="", description="Base name for config discovery (default: executable name)")
    env_prefix: str = Field(default="", description="Prefix for automatic environment lookup")
    log_level: str = Field(default="WARNING", description="Default level for the cfgbind CLI")
    log_format: str = Field(default="console", description="Default CLI log format: console or json")


def get_settings() -> CfgBindSettings:
    return CfgBindSettings()
