"""Lazily-opened database connection and the query primitive built on it."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from .errors import DatabaseConnectionError, QueryError

logger = logging.getLogger(__name__)

Query = str | sql.Composable


class ConnectionState(str, Enum):
    """Lifecycle state of a DbConnection."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class DbConnection:
    """
    Owns a single, reusable connection to one database.

    The connection is opened on first use and reopened if it has been closed.
    ensure_connected() and close() are the only state transitions.
    """

    def __init__(self, connection_url: str | None):
        self.connection_url = connection_url
        self.conn: psycopg.AsyncConnection | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        if self.conn is None or self.conn.closed:
            return ConnectionState.DISCONNECTED
        return ConnectionState.CONNECTED

    async def ensure_connected(self) -> psycopg.AsyncConnection:
        """
        Open the connection if there is none or it has been closed.

        Returns:
            The open connection

        Raises:
            DatabaseConnectionError: If the connection cannot be opened
        """
        if self.state is ConnectionState.CONNECTED:
            return self.conn

        # concurrent callers wait for a single connect attempt
        async with self._connect_lock:
            if self.state is ConnectionState.CONNECTED:
                return self.conn

            if self.connection_url is None:
                raise DatabaseConnectionError("Database connection URL not provided")

            try:
                self.conn = await psycopg.AsyncConnection.connect(
                    self.connection_url,
                    autocommit=True,
                    row_factory=dict_row,
                )
            except psycopg.Error as e:
                self.conn = None
                raise DatabaseConnectionError(f"Could not connect to the database: {e}") from e

            logger.info("Connected to the database.")
            return self.conn

    async def close(self) -> None:
        """Close the connection if it is open. Safe to call repeatedly."""
        if self.state is ConnectionState.DISCONNECTED:
            self.conn = None
            return

        await self.conn.close()
        self.conn = None
        logger.info("Database connection closed")


class SqlDriver:
    """Executes parameterized queries over a DbConnection."""

    def __init__(self, connection: DbConnection):
        self.connection = connection

    async def ensure_connected(self) -> None:
        await self.connection.ensure_connected()

    async def execute_query(
        self,
        query: Query,
        params: list[Any] | tuple[Any, ...] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Run a query and return its rows.

        Args:
            query: SQL text with %s placeholders, or a composed statement
            params: Values bound to the placeholders

        Returns:
            Result rows as dictionaries keyed by column name, [] when the
            statement produces no result set

        Raises:
            DatabaseConnectionError: If the connection cannot be opened
            QueryError: If the query fails
        """
        conn = await self.connection.ensure_connected()

        try:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                if cur.description is None:
                    return []
                return list(await cur.fetchall())
        except psycopg.Error as e:
            raise QueryError(str(e)) from e

    async def close(self) -> None:
        await self.connection.close()
