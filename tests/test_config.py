"""Tests for environment settings."""

import pytest

from pgadvisor_mcp.config import DatabaseSettings

ENV_VARS = ["DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_DATABASE", "DB_SCHEMA", "DATABASE_URI"]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # register every variable so values loaded from .env files are undone
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_from_env(clean_env):
    clean_env.setenv("DB_HOST", "db.local")
    clean_env.setenv("DB_PORT", "5433")
    clean_env.setenv("DB_USER", "advisor")
    clean_env.setenv("DB_PASSWORD", "secret")
    clean_env.setenv("DB_DATABASE", "shop")

    settings = DatabaseSettings.from_env()

    assert settings.host == "db.local"
    assert settings.port == 5433
    assert settings.schema == "public"
    assert settings.missing_fields() == []

    conninfo = settings.conninfo()
    assert "host=db.local" in conninfo
    assert "port=5433" in conninfo
    assert "dbname=shop" in conninfo


def test_env_file(clean_env, tmp_path):
    env_file = tmp_path / "advisor.env"
    env_file.write_text("DB_HOST=from-file\nDB_SCHEMA=sales\n")

    settings = DatabaseSettings.from_env(str(env_file))

    assert settings.host == "from-file"
    assert settings.schema == "sales"


def test_missing_fields(clean_env):
    clean_env.setenv("DB_HOST", "db.local")

    settings = DatabaseSettings.from_env()

    assert settings.missing_fields() == ["user", "password", "database"]


def test_conninfo_none_while_credentials_missing(clean_env):
    clean_env.setenv("DB_HOST", "db.local")
    clean_env.setenv("DB_USER", "advisor")

    settings = DatabaseSettings.from_env()

    assert settings.conninfo() is None


def test_database_uri_takes_precedence(clean_env):
    clean_env.setenv("DATABASE_URI", "postgresql://u:p@h/db")
    clean_env.setenv("DB_HOST", "ignored")

    settings = DatabaseSettings.from_env()

    assert settings.conninfo() == "postgresql://u:p@h/db"
    assert settings.missing_fields() == []
