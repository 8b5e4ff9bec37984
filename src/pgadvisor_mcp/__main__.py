"""Entry point for running the MCP server with ``python -m pgadvisor_mcp``."""

import asyncio

from .server import main


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
