from __future__ import annotations

import json
import os
from typing import Annotated, List, Optional, Tuple, Type

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

# appsettings.json lives next to the process working directory unless overridden.
APPSETTINGS_FILE_ENV = "HRB_APPSETTINGS_FILE"
DEFAULT_APPSETTINGS_FILE = "appsettings.json"


def appsettings_path() -> str:
    """Return the path of the JSON configuration file to layer under environment variables."""
    return os.environ.get(APPSETTINGS_FILE_ENV, DEFAULT_APPSETTINGS_FILE)


class LayeredSettings(BaseSettings):
    """
    BaseSettings with an extra appsettings.json layer.

    Precedence (highest first): init kwargs, environment variables, .env,
    appsettings.json, secret files. Nested keys can be overridden from the
    environment with a double underscore, e.g. CONNECTIONSTRINGS__DEFAULT.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        json_settings = JsonConfigSettingsSource(settings_cls, json_file=appsettings_path())
        return (init_settings, env_settings, dotenv_settings, json_settings, file_secret_settings)


class AppSettings(LayeredSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from src.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="HR Budget API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for HR budget and headcount administration. "
            "Provides budget configuration, movement notifications, activity and upload logs."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    # NoDecode keeps comma-separated env values away from the JSON decoder
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=True,
        description="If true, run data seed contributors after migrations.",
    )

    # Development flag read by the dev user seed contributor
    IsDevelopment: bool = Field(
        default=False,
        description="When true the seeder ensures a local 'dev' account exists.",
    )

    # Tokens
    JWT_SECRET_KEY: str = Field(default="change-me", description="HMAC secret used to sign JWTs")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7)

    # Uploads
    UPLOAD_MAX_FILE_SIZE_BYTES: int = Field(default=4 * 1024 * 1024)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str) and v.strip().startswith("["):
            v = json.loads(v)
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from the environment and appsettings.json.

    A new instance is built on each call so tests can flip environment variables.
    """
    return AppSettings()
