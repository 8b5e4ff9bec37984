"""Services package for the PostgreSQL schema advisor."""

from .errors import AdvisorError, AnalysisError, DatabaseConnectionError, QueryError
from .sql_driver import ConnectionState, DbConnection, SqlDriver
from .table_analyzer import (
    DATA_TYPE_DOWNGRADES,
    AnalysisReport,
    AnalysisStatus,
    Suggestion,
    TableAnalyzer,
    TableStatistics,
    build_suggestions,
    extract_unused_indexes,
    get_data_type_optimizations,
    has_foreign_key_candidates,
)

__all__ = [
    "AdvisorError",
    "AnalysisError",
    "DatabaseConnectionError",
    "QueryError",
    "ConnectionState",
    "DbConnection",
    "SqlDriver",
    "DATA_TYPE_DOWNGRADES",
    "AnalysisReport",
    "AnalysisStatus",
    "Suggestion",
    "TableAnalyzer",
    "TableStatistics",
    "build_suggestions",
    "extract_unused_indexes",
    "get_data_type_optimizations",
    "has_foreign_key_candidates",
]
