"""Console, HTML and JSON renderings of optimization suggestions."""

from __future__ import annotations

import html
import json
from collections.abc import Sequence
from dataclasses import asdict
from itertools import groupby

from .services.table_analyzer import AnalysisReport, Suggestion

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; margin: 2em; }}
h2 {{ border-bottom: 1px solid #ccc; padding-bottom: 0.2em; }}
li {{ margin: 0.3em 0; }}
.category {{ color: #666; font-size: 0.85em; }}
</style>
</head>
<body>
<h1>{title}</h1>
{body}
</body>
</html>
"""


def format_console(suggestions: Sequence[Suggestion]) -> str:
    """Plain-text dump, one suggestion per line."""
    lines = ["Optimization suggestions:"]
    if not suggestions:
        lines.append("  (none)")
    for s in suggestions:
        lines.append(f"  [{s.table_name}] {s.suggestion}")
    return "\n".join(lines)


def render_html(
    suggestions: Sequence[Suggestion],
    title: str = "Database Optimization Suggestions",
) -> str:
    """
    Render a static HTML document listing suggestions grouped by table.

    Tables appear in the order of their first suggestion. All text is
    escaped.
    """
    sections = []
    for table_name, group in groupby(suggestions, key=lambda s: s.table_name):
        items = "\n".join(
            f'<li>{html.escape(s.suggestion)} '
            f'<span class="category">({html.escape(s.category)})</span></li>'
            for s in group
        )
        sections.append(f"<h2>{html.escape(table_name)}</h2>\n<ul>\n{items}\n</ul>")

    body = "\n".join(sections) if sections else "<p>No optimization suggestions.</p>"
    return HTML_TEMPLATE.format(title=html.escape(title), body=body)


def format_json(report: AnalysisReport) -> str:
    return json.dumps(asdict(report), indent=2, default=str)
