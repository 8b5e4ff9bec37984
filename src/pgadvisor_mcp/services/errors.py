"""Error types raised by the advisor services."""

from __future__ import annotations


class AdvisorError(Exception):
    """Base class for all advisor errors."""


class DatabaseConnectionError(AdvisorError):
    """The database session could not be opened."""


class QueryError(AdvisorError):
    """A single query failed to execute."""


class AnalysisError(AdvisorError):
    """One or more of the statistics queries for a table failed."""

    def __init__(self, table_name: str, message: str):
        super().__init__(f"Failed to analyze table '{table_name}': {message}")
        self.table_name = table_name
