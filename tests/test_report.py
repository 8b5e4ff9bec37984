"""Tests for suggestion renderings."""

import json

from pgadvisor_mcp.report import format_console, format_json, render_html
from pgadvisor_mcp.services.table_analyzer import AnalysisReport, AnalysisStatus, Suggestion

SUGGESTIONS = [
    Suggestion("users", "Add an index to improve query performance.", "index"),
    Suggestion("users", "Add foreign keys to establish relationships between tables.", "foreign_key"),
    Suggestion("orders", "Remove unused indexes: Unused <idx>", "unused_index"),
]


def test_format_console():
    output = format_console(SUGGESTIONS)
    lines = output.splitlines()

    assert lines[0] == "Optimization suggestions:"
    assert lines[1] == "  [users] Add an index to improve query performance."
    assert len(lines) == 4


def test_format_console_empty():
    assert "(none)" in format_console([])


def test_render_html_groups_by_table():
    output = render_html(SUGGESTIONS, title="Report")

    assert output.startswith("<!DOCTYPE html>")
    assert "<title>Report</title>" in output
    assert output.count("<h2>") == 2
    assert output.index("<h2>users</h2>") < output.index("<h2>orders</h2>")
    assert output.count("<li>") == 3


def test_render_html_escapes_text():
    output = render_html(SUGGESTIONS)

    assert "Unused &lt;idx&gt;" in output
    assert "<idx>" not in output


def test_render_html_empty():
    assert "No optimization suggestions." in render_html([])


def test_format_json():
    report = AnalysisReport(
        status=AnalysisStatus.PARTIAL,
        suggestions=SUGGESTIONS[:1],
        tables_analyzed=["users"],
        failed_tables={"orders": "boom"},
    )
    data = json.loads(format_json(report))

    assert data["status"] == "partial"
    assert data["suggestions"][0]["table_name"] == "users"
    assert data["failed_tables"] == {"orders": "boom"}
    assert data["error"] is None
