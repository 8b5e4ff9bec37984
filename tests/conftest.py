"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pgadvisor_mcp.services import table_analyzer
from pgadvisor_mcp.services.errors import QueryError


@pytest.fixture
def mock_sql_driver():
    """Create a mock SQL driver for testing."""
    driver = AsyncMock()
    driver.execute_query = AsyncMock(return_value=[])
    driver.ensure_connected = AsyncMock()
    driver.close = AsyncMock()
    return driver


def table_data(
    indexes=None,
    row_count=0,
    cardinality=None,
    comment="",
    columns=None,
):
    """Query results describing one table."""
    return {
        "indexes": indexes or [],
        "row_count": row_count,
        "cardinality": cardinality or [],
        "comment": comment,
        "columns": columns or [],
    }


@pytest.fixture
def make_table():
    return table_data


@pytest.fixture
def fake_database(mock_sql_driver, monkeypatch):
    """
    Route analyzer queries to canned per-table results.

    Usage: fake_database({"users": table_data(...)}, failing={"orders"})
    Tables are listed in dict order. The composed per-table queries are
    replaced by (kind, table_name) tuples so they can be told apart.
    """
    monkeypatch.setattr(
        table_analyzer, "row_count_query", lambda schema, table: ("row_count", table)
    )
    monkeypatch.setattr(
        table_analyzer, "cardinality_query", lambda schema, table: ("cardinality", table)
    )

    def configure(tables, failing=(), list_error=None):
        async def execute_query(query, params=None):
            if query is table_analyzer.LIST_TABLES_QUERY:
                if list_error is not None:
                    raise list_error
                return [{"table_name": name} for name in tables]

            kind, name = query if isinstance(query, tuple) else (query, params[1])
            if name in failing:
                raise QueryError(f'relation "{name}" does not exist')
            data = tables[name]

            if kind == "row_count":
                return [{"row_count": data["row_count"]}]
            if kind == "cardinality":
                assert params == [table_analyzer.LOW_CARDINALITY_THRESHOLD]
                return [
                    {"column_name": column, "cardinality": value}
                    for column, value in data["cardinality"]
                ]
            if kind is table_analyzer.INDEX_QUERY:
                return data["indexes"]
            if kind is table_analyzer.TABLE_STATUS_QUERY:
                return [{"Name": name, "Comment": data["comment"], "Update_time": None}]
            if kind is table_analyzer.COLUMN_TYPES_QUERY:
                return [
                    {"column_name": column, "data_type": data_type}
                    for column, data_type in data["columns"]
                ]
            raise AssertionError(f"Unexpected query: {query}")

        mock_sql_driver.execute_query = AsyncMock(side_effect=execute_query)
        return mock_sql_driver

    return configure


@pytest.fixture
def fake_pg_connection():
    """A stand-in for psycopg.AsyncConnection returning the given rows."""
    def build(rows=None, description=(("column",),)):
        conn = MagicMock()
        conn.closed = False

        async def close():
            conn.closed = True

        conn.close = AsyncMock(side_effect=close)

        cursor = MagicMock()
        cursor.execute = AsyncMock()
        cursor.fetchall = AsyncMock(return_value=rows or [])
        cursor.description = description

        cursor_cm = MagicMock()
        cursor_cm.__aenter__ = AsyncMock(return_value=cursor)
        cursor_cm.__aexit__ = AsyncMock(return_value=False)
        conn.cursor = MagicMock(return_value=cursor_cm)
        conn.test_cursor = cursor
        return conn

    return build
