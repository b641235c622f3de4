from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from src.core.settings import LayeredSettings


class ConnectionStringsSection(BaseModel):
    """Named connection strings, mirrors the ConnectionStrings section of appsettings.json."""
    Default: Optional[str] = Field(default=None, description="SQLAlchemy URL of the main database")

    @model_validator(mode="before")
    @classmethod
    def _case_insensitive_keys(cls, data):
        # Environment overrides arrive lower-cased (CONNECTIONSTRINGS__DEFAULT).
        if isinstance(data, dict):
            return {("Default" if str(k).lower() == "default" else k): v for k, v in data.items()}
        return data


class Settings(LayeredSettings):
    """
    Database configuration.

    The URL is taken from ConnectionStrings.Default (appsettings.json or the
    CONNECTIONSTRINGS__DEFAULT environment variable). When absent the
    POSTGRES_* variables are used to assemble a PostgreSQL URL.
    """

    ConnectionStrings: ConnectionStringsSection = Field(default_factory=ConnectionStringsSection)

    POSTGRES_URL: Optional[str] = Field(
        default=None, description="If provided, full PostgreSQL connection URL."
    )
    POSTGRES_USER: Optional[str] = Field(default=None, description="DB username")
    POSTGRES_PASSWORD: Optional[str] = Field(default=None, description="DB password")
    POSTGRES_DB: Optional[str] = Field(default=None, description="Database name")
    POSTGRES_PORT: Optional[int] = Field(
        default=5432, description="Database port (default 5432)"
    )
    POSTGRES_HOST: Optional[str] = Field(
        default="localhost", description="Database host (default localhost)"
    )

    # SQLAlchemy engine options
    SQL_ECHO: bool = Field(
        default=False, description="Echo SQL statements for debugging (default False)"
    )

    @property
    def database_url(self) -> str:
        """
        Compute the base (driver-neutral) database URL.

        Preference order: ConnectionStrings.Default, POSTGRES_URL, POSTGRES_* parts.
        """
        if self.ConnectionStrings.Default:
            return self.ConnectionStrings.Default
        if self.POSTGRES_URL:
            return self.POSTGRES_URL

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB]):
            raise ValueError(
                "Database configuration missing. Set ConnectionStrings.Default in appsettings.json, "
                "CONNECTIONSTRINGS__DEFAULT, or POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        host = self.POSTGRES_HOST or "localhost"
        port = self.POSTGRES_PORT or 5432
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{host}:{port}/{self.POSTGRES_DB}"

    @property
    def async_database_url(self) -> str:
        """Return the URL with an async driver (asyncpg for PostgreSQL, aiosqlite for SQLite)."""
        return to_async_url(self.database_url)

    @property
    def sync_database_url(self) -> str:
        """Strip async driver markers; used by Alembic offline mode."""
        return to_sync_url(self.database_url)


def to_async_url(url: str) -> str:
    """Normalise a URL so it can be handed to create_async_engine."""
    if url.startswith("postgresql+asyncpg://") or url.startswith("sqlite+aiosqlite://"):
        return url
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    url = re.sub(r"^postgresql(\+\w+)?://", "postgresql+asyncpg://", url)
    return re.sub(r"^sqlite(\+\w+)?://", "sqlite+aiosqlite://", url)


def to_sync_url(url: str) -> str:
    """Drop the driver marker from a URL."""
    url = re.sub(r"^postgresql\+\w+://", "postgresql://", url)
    return re.sub(r"^sqlite\+\w+://", "sqlite://", url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return a fresh database settings object."""
    return Settings()
