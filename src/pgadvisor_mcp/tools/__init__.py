"""Tools package for the PostgreSQL schema advisor."""

from .toolhandler import ToolHandler
from .tools_analysis import (
    AnalyzeTableToolHandler,
    ListTablesToolHandler,
    OptimizationSuggestionsToolHandler,
)

__all__ = [
    "ToolHandler",
    "ListTablesToolHandler",
    "AnalyzeTableToolHandler",
    "OptimizationSuggestionsToolHandler",
]
