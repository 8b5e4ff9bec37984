"""Database settings loaded from the process environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields

from dotenv import load_dotenv
from psycopg.conninfo import make_conninfo


@dataclass
class DatabaseSettings:
    """
    Connection settings for the analyzed database.

    Read from DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_DATABASE and
    DB_SCHEMA, or from a complete DATABASE_URI which takes precedence over
    the individual values.
    """

    host: str | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    port: int | None = None
    schema: str = "public"
    database_uri: str | None = None

    @classmethod
    def from_env(cls, env_file: str | None = None) -> DatabaseSettings:
        """
        Build settings from environment variables.

        Args:
            env_file: Optional .env file loaded before reading the environment.
                Variables already set in the environment are not overridden.
        """
        load_dotenv(env_file)

        port = os.environ.get("DB_PORT")
        return cls(
            host=os.environ.get("DB_HOST"),
            user=os.environ.get("DB_USER"),
            password=os.environ.get("DB_PASSWORD"),
            database=os.environ.get("DB_DATABASE"),
            port=int(port) if port else None,
            schema=os.environ.get("DB_SCHEMA", "public"),
            database_uri=os.environ.get("DATABASE_URI"),
        )

    def missing_fields(self) -> list[str]:
        """Names of the required credential values that are not set."""
        if self.database_uri:
            return []
        required = ("host", "user", "password", "database")
        return [f.name for f in fields(self) if f.name in required and not getattr(self, f.name)]

    def conninfo(self) -> str | None:
        """Connection string for psycopg, None while credentials are missing."""
        if self.database_uri:
            return self.database_uri
        if self.missing_fields():
            return None
        return make_conninfo(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            dbname=self.database,
        )
