"""Application-wide configuration management using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration shared across services.

    Environment variables (or a local ``.env`` file) override every field,
    e.g. ``PRINTER_SETTINGS_URL=sqlite:///printer-link.db``.
    """

    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", extra="ignore")

    environment: str = "development"
    service_name: str = "printer-link"
    log_level: str = "INFO"

    # Settings persistence (memory://, file://<path>, *.json or a SQLAlchemy URL)
    printer_settings_url: str = "file://~/.printer-link/settings.json"
    printer_settings_key: str = "sb:settings"
    printer_plugin_id: str = "octoprint"

    # Dispatch
    dispatch_timeout_seconds: float = 60.0
    notifications_enabled: bool = True

    # REST API
    printer_link_host: str = "127.0.0.1"
    printer_link_port: int = 8410


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache configuration for the current process."""

    return Settings()  # type: ignore[arg-type]


__all__ = ["Settings", "get_settings"]
