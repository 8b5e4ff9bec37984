"""Table analysis and optimization suggestions.

For every table of a schema the analyzer gathers index metadata, the row
count, low-cardinality columns, unused-index hints, a foreign-key hint and the
declared column types, then maps those statistics through a fixed set of
threshold rules into human-readable suggestions.

The engine queries alias their columns to the shapes the rules read
(``Key_name``, ``Index_type``, ``Non_unique`` for indexes, ``Name`` and
``Comment`` for table status), so only the queries are PostgreSQL specific.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from psycopg import sql

from .errors import AdvisorError, AnalysisError
from .sql_driver import SqlDriver

logger = logging.getLogger(__name__)

LOW_CARDINALITY_THRESHOLD = 10
PARTITION_ROW_THRESHOLD = 100000

DATA_TYPE_DOWNGRADES: Mapping[str, str] = MappingProxyType({
    "bigint": "integer",
    "int": "smallint",
    "integer": "smallint",
    "double precision": "numeric",
    "double": "decimal",
    "float": "decimal",
    "real": "numeric",
    "longtext": "text",
    "mediumtext": "text",
    "longblob": "blob",
})

LIST_TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s
      AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

# One row per indexed column, like SHOW INDEXES.
INDEX_QUERY = """
    SELECT
        CASE WHEN x.indisprimary THEN 'PRIMARY' ELSE i.relname END AS "Key_name",
        UPPER(am.amname) AS "Index_type",
        CASE WHEN x.indisunique THEN 0 ELSE 1 END AS "Non_unique",
        a.attname AS "Column_name",
        k.n AS "Seq_in_index"
    FROM pg_index x
    JOIN pg_class t ON t.oid = x.indrelid
    JOIN pg_class i ON i.oid = x.indexrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    JOIN pg_am am ON am.oid = i.relam
    CROSS JOIN unnest(x.indkey) WITH ORDINALITY AS k(attnum, n)
    LEFT JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
    WHERE n.nspname = %s
      AND t.relname = %s
    ORDER BY i.relname, k.n
"""

ROW_COUNT_SQL = sql.SQL("SELECT COUNT(*) AS row_count FROM {}.{}")

# Exact distinct counts for every column in one scan: each row is unpacked
# into (column, value) pairs.
CARDINALITY_SQL = sql.SQL("""
    SELECT
        c.key AS column_name,
        COUNT(DISTINCT c.value) AS cardinality
    FROM {}.{} AS t
    CROSS JOIN LATERAL jsonb_each_text(to_jsonb(t)) AS c(key, value)
    GROUP BY c.key
    HAVING COUNT(DISTINCT c.value) < %s
    ORDER BY c.key
""")


def row_count_query(schema: str, table_name: str) -> sql.Composed:
    return ROW_COUNT_SQL.format(sql.Identifier(schema), sql.Identifier(table_name))


def cardinality_query(schema: str, table_name: str) -> sql.Composed:
    return CARDINALITY_SQL.format(sql.Identifier(schema), sql.Identifier(table_name))


TABLE_STATUS_QUERY = """
    SELECT
        c.relname AS "Name",
        COALESCE(obj_description(c.oid, 'pg_class'), '') AS "Comment",
        GREATEST(s.last_vacuum, s.last_autovacuum,
                 s.last_analyze, s.last_autoanalyze) AS "Update_time"
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_stat_user_tables s ON s.relid = c.oid
    WHERE n.nspname = %s
      AND c.relname = %s
"""

COLUMN_TYPES_QUERY = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = %s
      AND table_name = %s
    ORDER BY ordinal_position
"""


@dataclass(frozen=True)
class ColumnCardinality:
    column_name: str
    cardinality: int


@dataclass(frozen=True)
class UnusedIndex:
    index_name: str
    table_name: str
    last_access_time: Any = None


@dataclass(frozen=True)
class ColumnDataType:
    column_name: str
    data_type: str


@dataclass(frozen=True)
class TableStatistics:
    """Statistics gathered for a single table."""

    index_count: int = 0
    row_count: int = 0
    column_cardinality: tuple[ColumnCardinality, ...] = ()
    unused_indexes: tuple[UnusedIndex, ...] = ()
    has_foreign_keys: bool = False
    column_data_types: tuple[ColumnDataType, ...] = ()
    collected: bool = True

    @classmethod
    def empty(cls) -> TableStatistics:
        """Record returned when the statistics could not be gathered."""
        return cls(collected=False)


@dataclass(frozen=True)
class Suggestion:
    table_name: str
    suggestion: str
    category: str = ""


class AnalysisStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class AnalysisReport:
    """Outcome of a full analysis run."""

    status: AnalysisStatus
    suggestions: list[Suggestion] = field(default_factory=list)
    tables_analyzed: list[str] = field(default_factory=list)
    failed_tables: dict[str, str] = field(default_factory=dict)
    error: str | None = None


def extract_unused_indexes(status_rows: Iterable[dict[str, Any]]) -> list[UnusedIndex]:
    """
    Find indexes marked as unused in free-text table comments.

    A comment is a list of entries separated by ';' (or by ',' when it has no
    ';'). Entries containing "Unused" are kept and joined into one UnusedIndex
    per table.

    Args:
        status_rows: Table status rows with "Name", "Comment" and optionally
            "Update_time" keys

    Returns:
        One UnusedIndex per row whose comment mentions unused indexes
    """
    unused_indexes = []
    for row in status_rows:
        comment = row.get("Comment") or ""
        separator = ";" if ";" in comment else ","
        unused = [
            fragment.strip()
            for fragment in comment.split(separator)
            if "Unused" in fragment
        ]
        if unused:
            unused_indexes.append(UnusedIndex(
                index_name=", ".join(unused),
                table_name=row.get("Name", ""),
                last_access_time=row.get("Update_time"),
            ))
    return unused_indexes


def has_foreign_key_candidates(index_rows: Iterable[dict[str, Any]]) -> bool:
    """
    Approximate foreign-key presence from index metadata.

    True when a non-primary, unique B-tree index exists. This does not check
    real foreign-key constraints.
    """
    return any(
        index.get("Key_name") != "PRIMARY"
        and index.get("Index_type") == "BTREE"
        and index.get("Non_unique") == 0
        for index in index_rows
    )


def get_data_type_optimizations(
    table_name: str,
    column_data_types: Iterable[ColumnDataType],
    downgrades: Mapping[str, str] = DATA_TYPE_DOWNGRADES,
) -> list[Suggestion]:
    """
    Suggest narrower data types for columns, in column order.

    Args:
        table_name: Table owning the columns
        column_data_types: Declared column types
        downgrades: Mapping from lower-cased type name to recommended type

    Returns:
        One suggestion per column whose type maps to a different type
    """
    suggestions = []
    for column in column_data_types:
        current_type = column.data_type.lower()
        recommended = downgrades.get(current_type)
        if recommended and recommended != current_type:
            suggestions.append(Suggestion(
                table_name=table_name,
                suggestion=(
                    f"Consider changing the data type of column '{column.column_name}' "
                    f"from '{current_type}' to '{recommended}' to reduce storage."
                ),
                category="data_type",
            ))
    return suggestions


def build_suggestions(table_name: str, stats: TableStatistics) -> list[Suggestion]:
    """Apply the threshold rules to a table's statistics, in fixed order."""
    if not stats.collected:
        return []

    suggestions = []

    if stats.index_count == 0:
        suggestions.append(Suggestion(
            table_name,
            "Add an index to improve query performance.",
            "index",
        ))

    if stats.row_count > PARTITION_ROW_THRESHOLD:
        suggestions.append(Suggestion(
            table_name,
            "Consider partitioning the table to improve query performance.",
            "partitioning",
        ))

    if stats.column_cardinality:
        columns = ", ".join(c.column_name for c in stats.column_cardinality)
        suggestions.append(Suggestion(
            table_name,
            f"Consider adding an index or partitioning for columns with low cardinality: {columns}",
            "cardinality",
        ))

    if stats.unused_indexes:
        indexes = ", ".join(u.index_name for u in stats.unused_indexes)
        suggestions.append(Suggestion(
            table_name,
            f"Remove unused indexes: {indexes}",
            "unused_index",
        ))

    if not stats.has_foreign_keys:
        suggestions.append(Suggestion(
            table_name,
            "Add foreign keys to establish relationships between tables.",
            "foreign_key",
        ))

    suggestions.extend(get_data_type_optimizations(table_name, stats.column_data_types))
    return suggestions


class TableAnalyzer:
    """
    Analyzes the tables of one schema and produces optimization suggestions.

    Tables are analyzed one at a time; the statistics queries of a single
    table run concurrently. The analyzer closes its connection at the end of
    every run, the next run reconnects.
    """

    def __init__(self, sql_driver: SqlDriver, schema: str = "public"):
        self.driver = sql_driver
        self.schema = schema

    async def _fetch_table_names(self) -> list[str]:
        rows = await self.driver.execute_query(LIST_TABLES_QUERY, [self.schema])
        return [next(iter(row.values())) for row in rows]

    async def list_tables(self) -> list[str]:
        """
        List the tables of the schema, in the order the engine returns them.

        Returns:
            Table names, or [] if the listing query fails
        """
        try:
            return await self._fetch_table_names()
        except AdvisorError as e:
            logger.error(f"Error listing tables in schema {self.schema}: {e}")
            return []

    async def collect_statistics(self, table_name: str) -> TableStatistics:
        """
        Gather the statistics of one table.

        Raises:
            AnalysisError: If any of the statistics queries fails
        """
        params = [self.schema, table_name]

        results = await asyncio.gather(
            self.driver.execute_query(INDEX_QUERY, params),
            self.driver.execute_query(row_count_query(self.schema, table_name)),
            self.driver.execute_query(
                cardinality_query(self.schema, table_name), [LOW_CARDINALITY_THRESHOLD]
            ),
            self.driver.execute_query(TABLE_STATUS_QUERY, params),
            self.driver.execute_query(COLUMN_TYPES_QUERY, params),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, AdvisorError):
                raise AnalysisError(table_name, str(result)) from result
            if isinstance(result, BaseException):
                raise result
        indexes, row_count_rows, cardinality_rows, status_rows, column_rows = results

        stats = TableStatistics(
            index_count=len(indexes),
            row_count=int(row_count_rows[0]["row_count"]) if row_count_rows else 0,
            column_cardinality=tuple(
                ColumnCardinality(row["column_name"], int(row["cardinality"]))
                for row in cardinality_rows
            ),
            unused_indexes=tuple(extract_unused_indexes(status_rows)),
            has_foreign_keys=has_foreign_key_candidates(indexes),
            column_data_types=tuple(
                ColumnDataType(row["column_name"], row["data_type"])
                for row in column_rows
            ),
        )
        logger.debug(f"Table statistics for {table_name}: {stats}")
        return stats

    async def analyze_table(self, table_name: str) -> TableStatistics:
        """
        Gather the statistics of one table, absorbing failures.

        Returns:
            The table statistics, or TableStatistics.empty() if they could not
            be gathered. An empty record yields no suggestions.
        """
        try:
            return await self.collect_statistics(table_name)
        except AnalysisError as e:
            logger.error(str(e))
            return TableStatistics.empty()

    async def run_analysis(self) -> AnalysisReport:
        """
        Analyze every table of the schema.

        A table whose statistics cannot be gathered is recorded in
        failed_tables and the run continues. Failing to connect or to list
        the tables fails the whole run. The connection is closed at the end.
        """
        report = AnalysisReport(status=AnalysisStatus.SUCCESS)
        try:
            await self.driver.ensure_connected()
            table_names = await self._fetch_table_names()
            logger.info(f"Analyzing {len(table_names)} tables in schema {self.schema}")

            for table_name in table_names:
                try:
                    stats = await self.collect_statistics(table_name)
                except AnalysisError as e:
                    logger.error(str(e))
                    report.failed_tables[table_name] = str(e)
                    continue
                report.tables_analyzed.append(table_name)
                report.suggestions.extend(build_suggestions(table_name, stats))

            if report.failed_tables:
                report.status = (
                    AnalysisStatus.PARTIAL if report.tables_analyzed else AnalysisStatus.FAILED
                )
        except AdvisorError as e:
            logger.exception(f"Error analyzing tables: {e}")
            report = AnalysisReport(status=AnalysisStatus.FAILED, error=str(e))
        finally:
            await self.driver.close()

        return report

    async def analyze_tables(self) -> list[Suggestion]:
        """
        Analyze every table of the schema and return the suggestions.

        Returns:
            Suggestions in table order then rule order, [] if the run failed
        """
        report = await self.run_analysis()
        return report.suggestions
