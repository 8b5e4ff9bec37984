"""Schema analysis tool handlers."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import asdict
from typing import Any

from mcp.types import TextContent, Tool

from ..services import SqlDriver, TableAnalyzer, build_suggestions
from .toolhandler import ToolHandler

SCHEMA_NAME_PROPERTY = {
    "type": "string",
    "description": "Schema to analyze (default: public)",
    "default": "public"
}


class ListTablesToolHandler(ToolHandler):
    """Tool handler for listing the tables of a schema."""

    name = "list_tables"
    title = "Table Lister"
    description = """List the base tables of a PostgreSQL schema.

Tables are returned in the order the database reports them. These names can be
passed to analyze_table."""

    def __init__(self, sql_driver: SqlDriver):
        self.sql_driver = sql_driver

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "schema_name": SCHEMA_NAME_PROPERTY
                },
                "required": []
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            schema_name = arguments.get("schema_name", "public")
            analyzer = TableAnalyzer(self.sql_driver, schema_name)
            tables = await analyzer.list_tables()

            return self.format_json_result({
                "schema": schema_name,
                "tables": tables,
                "table_count": len(tables)
            })

        except Exception as e:
            return self.format_error(e)


class AnalyzeTableToolHandler(ToolHandler):
    """Tool handler for analyzing a single table."""

    name = "analyze_table"
    title = "Table Analyzer"
    description = """Gather optimization statistics for one table and suggest improvements.

Collects, in parallel:
- Index definitions (count and a unique-index foreign key hint)
- Row count
- Columns with fewer than 10 distinct values
- Indexes marked "Unused" in the table comment
- Declared column data types

Suggestions cover missing indexes, partitioning of large tables, low-cardinality
columns, unused indexes, missing foreign keys and narrower data types."""

    def __init__(self, sql_driver: SqlDriver):
        self.sql_driver = sql_driver

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "table_name": {
                        "type": "string",
                        "description": "Name of the table to analyze"
                    },
                    "schema_name": SCHEMA_NAME_PROPERTY
                },
                "required": ["table_name"]
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            self.validate_required_args(arguments, ["table_name"])

            table_name = arguments["table_name"]
            schema_name = arguments.get("schema_name", "public")

            analyzer = TableAnalyzer(self.sql_driver, schema_name)
            stats = await analyzer.collect_statistics(table_name)
            suggestions = build_suggestions(table_name, stats)

            return self.format_json_result({
                "schema": schema_name,
                "table": table_name,
                "statistics": asdict(stats),
                "suggestions": [asdict(s) for s in suggestions]
            })

        except Exception as e:
            return self.format_error(e)


class OptimizationSuggestionsToolHandler(ToolHandler):
    """Tool handler for analyzing every table of a schema."""

    name = "get_optimization_suggestions"
    title = "Schema Optimization Advisor"
    description = """Analyze every table of a schema and return optimization suggestions.

Tables are analyzed one after another. The result reports:
- status: success, partial (some tables could not be analyzed) or failed
- suggestions: (table_name, suggestion) pairs in table order
- failed_tables: tables whose statistics could not be gathered, with the error"""

    def __init__(self, driver_factory: Callable[[], SqlDriver]):
        # each run owns its connection and closes it when done
        self.driver_factory = driver_factory

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "schema_name": SCHEMA_NAME_PROPERTY
                },
                "required": []
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            schema_name = arguments.get("schema_name", "public")
            analyzer = TableAnalyzer(self.driver_factory(), schema_name)
            report = await analyzer.run_analysis()

            output = asdict(report)
            output["schema"] = schema_name
            output["suggestion_count"] = len(report.suggestions)
            return self.format_json_result(output)

        except Exception as e:
            return self.format_error(e)
