"""Abstract base class for MCP tool handlers."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from mcp.types import TextContent, Tool, ToolAnnotations


class ToolHandler(ABC):
    """
    Base class for MCP tool handlers.

    Each handler defines its own schema and executes its own logic.

    Subclasses must implement:
        - name: The unique tool name
        - description: Human-readable description
        - get_tool_definition(): Returns the Tool schema
        - run_tool(): Executes the tool logic
    """

    name: str = ""
    title: str = ""
    description: str = ""
    read_only_hint: bool = True
    destructive_hint: bool = False
    idempotent_hint: bool = True
    open_world_hint: bool = False

    @abstractmethod
    def get_tool_definition(self) -> Tool:
        """Return the MCP Tool definition including input schema."""

    @abstractmethod
    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        """
        Execute the tool logic with the provided arguments.

        Args:
            arguments: Dictionary of arguments matching the input schema

        Returns:
            Sequence[TextContent]: The tool output as text content
        """

    def get_annotations(self) -> ToolAnnotations:
        return ToolAnnotations(
            title=self.title or None,
            readOnlyHint=self.read_only_hint,
            destructiveHint=self.destructive_hint,
            idempotentHint=self.idempotent_hint,
            openWorldHint=self.open_world_hint,
        )

    def validate_required_args(
        self,
        arguments: dict[str, Any],
        required: list[str]
    ) -> None:
        """
        Validate that required arguments are present.

        Raises:
            ValueError: If any required argument is missing
        """
        missing = [arg for arg in required if arg not in arguments or arguments[arg] is None]
        if missing:
            raise ValueError(f"Missing required arguments: {', '.join(missing)}")

    def format_error(self, error: Exception) -> Sequence[TextContent]:
        return [TextContent(type="text", text=f"Error: {str(error)}")]

    def format_result(self, result: str) -> Sequence[TextContent]:
        return [TextContent(type="text", text=result)]

    def format_json_result(self, data: Any) -> Sequence[TextContent]:
        return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]
