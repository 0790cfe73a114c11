"""Configuration management for Imagen.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the IMAGEN_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (IMAGEN_* prefix)
2. .env file in the project root
3. Default values defined in ImagenConfig

Example .env file:
    IMAGEN_DATA_DIR=data
    IMAGEN_DEFAULT_MODEL=google/gemini-2.5-flash-image
    IMAGEN_SERVER_PORT=7860
    IMAGEN_LOG_LEVEL=DEBUG

The API key is deliberately *not* a configuration value.  It is entered in the
UI and kept in the preference store, like the rest of the last-used settings.

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from imagen.core.config import config

    print(config.database_path)
    print(config.api_url)
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


class ImagenConfig(BaseSettings):
    """Main configuration for Imagen.

    Attributes
    ----------
    Storage:
        data_dir : Path
            Directory holding the record database and preferences file
        database_name : str
            SQLite file name inside ``data_dir``
        preferences_name : str
            JSON preferences file name inside ``data_dir``
        templates_dir : Path
            Directory containing ``index.html``

    Remote API:
        api_url : str
            OpenRouter chat-completions endpoint
        request_timeout : float
            Per-request timeout in seconds
        app_referer : str
            Value of the ``HTTP-Referer`` header sent to OpenRouter
        app_title : str
            Value of the ``X-Title`` header sent to OpenRouter

    Generation:
        default_model : str
            Model selected when no preference is stored
        max_image_count : int
            Upper bound for images per batch

    UI host:
        server_host : str
            Bind address (loopback by default, single user)
        server_port : int
            Server port (1024-65535)
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root log level configured by the console entry point
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGEN_",
        case_sensitive=False,
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the record database and preferences",
    )
    database_name: str = Field(default="imagen.db")
    preferences_name: str = Field(default="preferences.json")
    templates_dir: Path = Field(
        default=_PACKAGE_DIR / "templates",
        description="Directory containing index.html",
    )

    # Remote API
    api_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="OpenRouter chat-completions endpoint",
    )
    request_timeout: float = Field(default=120.0, gt=0)
    app_referer: str = Field(default="http://127.0.0.1:7860")
    app_title: str = Field(default="Imagen Internal Tool")

    # Generation
    default_model: str = Field(default="google/gemini-2.5-flash-image")
    max_image_count: int = Field(default=8, ge=1, le=16)

    # UI host
    server_host: str = Field(
        default="127.0.0.1",
        description="Server bind address (loopback, single user)",
    )
    server_port: int = Field(default=7860, ge=1024, le=65535)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Location of the SQLite record store."""
        return self.data_dir / self.database_name

    @property
    def preferences_path(self) -> Path:
        """Location of the JSON preference store."""
        return self.data_dir / self.preferences_name


# Global configuration instance, loaded from IMAGEN_* variables and .env.
config = ImagenConfig()
