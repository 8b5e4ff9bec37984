"""
pgadvisor_mcp: PostgreSQL schema optimization advisor

Inspects a database's schema and statistics and suggests missing indexes,
partitioning, foreign keys, unused index removal and narrower data types.
Available as a command line tool and as an MCP server.
"""

from .__main__ import run
from .server import main

__version__ = "0.1.0"
__all__ = ["main", "run"]
