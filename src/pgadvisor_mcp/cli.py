"""
pgadvisor: one-shot schema analysis from the command line.

Connects with the DB_* (or DATABASE_URI) settings, analyzes every table of the
schema and prints the suggestions, or writes them as HTML or JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import DatabaseSettings
from .report import format_console, format_json, render_html
from .services import AnalysisReport, AnalysisStatus, DbConnection, SqlDriver, TableAnalyzer

logger = logging.getLogger("pgadvisor_mcp")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='pgadvisor: suggest index, partitioning, key and data type optimizations for a PostgreSQL schema'
    )
    parser.add_argument(
        '--format',
        choices=['console', 'html', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    parser.add_argument(
        '--output',
        default=None,
        help='Write the output to this file instead of stdout'
    )
    parser.add_argument(
        '--schema',
        default=None,
        help='Schema to analyze (default: DB_SCHEMA env var or public)'
    )
    parser.add_argument(
        '--database-url',
        default=None,
        help='PostgreSQL connection URL (overrides DATABASE_URI and DB_* env vars)'
    )
    parser.add_argument(
        '--env-file',
        default=None,
        help='Path of a .env file to load before reading the environment'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


async def run_analysis(settings: DatabaseSettings) -> AnalysisReport:
    driver = SqlDriver(DbConnection(settings.conninfo()))
    analyzer = TableAnalyzer(driver, settings.schema)
    return await analyzer.run_analysis()


def render(report: AnalysisReport, output_format: str, schema: str) -> str:
    if output_format == "html":
        return render_html(report.suggestions, title=f"Optimization suggestions for schema {schema}")
    if output_format == "json":
        return format_json(report)
    return format_console(report.suggestions)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    settings = DatabaseSettings.from_env(args.env_file)
    if args.database_url:
        settings.database_uri = args.database_url
    if args.schema:
        settings.schema = args.schema

    missing = settings.missing_fields()
    if missing:
        logger.warning(f"Database settings not set: {', '.join(missing)}")

    report = asyncio.run(run_analysis(settings))
    output = render(report, args.format, settings.schema)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info(f"Wrote {len(report.suggestions)} suggestions to {args.output}")
    else:
        print(output)

    if report.failed_tables:
        logger.warning(f"Could not analyze tables: {', '.join(report.failed_tables)}")

    if report.status is AnalysisStatus.FAILED:
        logger.error(f"Analysis failed: {report.error or 'no table could be analyzed'}")
        return 1
    return 0
