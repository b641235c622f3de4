import json

import pytest

from src.core.settings import get_app_settings
from src.db.config import get_settings, to_async_url, to_sync_url


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql://u:p@db:5432/hrb", "postgresql+asyncpg://u:p@db:5432/hrb"),
        ("postgres://u:p@db/hrb", "postgresql+asyncpg://u:p@db/hrb"),
        ("postgresql+psycopg2://u:p@db/hrb", "postgresql+asyncpg://u:p@db/hrb"),
        ("postgresql+asyncpg://u:p@db/hrb", "postgresql+asyncpg://u:p@db/hrb"),
        ("sqlite:///./hrb.db", "sqlite+aiosqlite:///./hrb.db"),
    ],
)
def test_to_async_url(url, expected):
    assert to_async_url(url) == expected


def test_to_sync_url():
    assert to_sync_url("postgresql+asyncpg://u:p@db/hrb") == "postgresql://u:p@db/hrb"
    assert to_sync_url("sqlite+aiosqlite:///x.db") == "sqlite:///x.db"


@pytest.fixture
def appsettings(tmp_path, monkeypatch):
    """Point the JSON layer at a temporary appsettings.json and clear env overrides."""
    path = tmp_path / "appsettings.json"
    monkeypatch.setenv("HRB_APPSETTINGS_FILE", str(path))
    for name in ("CONNECTIONSTRINGS__DEFAULT", "POSTGRES_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB",
                 "CORS_ORIGINS", "LOG_LEVEL", "ISDEVELOPMENT"):
        monkeypatch.delenv(name, raising=False)

    def write(data):
        path.write_text(json.dumps(data), encoding="utf-8")

    return write


def test_connection_string_from_appsettings(appsettings, monkeypatch):
    appsettings({"ConnectionStrings": {"Default": "postgresql://hr:pw@db/hrb"}, "IsDevelopment": True, "LOG_LEVEL": "DEBUG"})

    db_settings = get_settings()
    assert db_settings.database_url == "postgresql://hr:pw@db/hrb"
    assert db_settings.async_database_url == "postgresql+asyncpg://hr:pw@db/hrb"

    app_settings = get_app_settings()
    assert app_settings.IsDevelopment is True
    assert app_settings.LOG_LEVEL == "DEBUG"

    monkeypatch.setenv("CONNECTIONSTRINGS__DEFAULT", "sqlite:///override.db")
    assert get_settings().database_url == "sqlite:///override.db"


def test_postgres_parts_fallback(appsettings, monkeypatch):
    appsettings({})
    with pytest.raises(ValueError):
        get_settings().database_url

    monkeypatch.setenv("POSTGRES_USER", "hr")
    monkeypatch.setenv("POSTGRES_PASSWORD", "pw")
    monkeypatch.setenv("POSTGRES_DB", "hrb")
    assert get_settings().database_url == "postgresql://hr:pw@localhost:5432/hrb"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("http://a.test, http://b.test", ["http://a.test", "http://b.test"]),
        ('["http://a.test"]', ["http://a.test"]),
        ("", ["*"]),
    ],
)
def test_cors_origins_parsing(appsettings, monkeypatch, raw, expected):
    appsettings({})
    monkeypatch.setenv("CORS_ORIGINS", raw)
    assert get_app_settings().CORS_ORIGINS == expected


def test_defaults_without_appsettings(appsettings):
    settings = get_app_settings()
    assert settings.IsDevelopment is False
    assert settings.CORS_ORIGINS == ["*"]
    assert settings.UPLOAD_MAX_FILE_SIZE_BYTES == 4 * 1024 * 1024
