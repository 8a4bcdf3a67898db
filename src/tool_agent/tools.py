"""Tool protocol, tool executor and built-in tools."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from .errors import ToolExecutionError
from .models import ToolDef, ToolResult

logger = logging.getLogger(__name__)


class BaseTool(ABC):
    """Base class for orchestrator tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for parameters."""
        ...

    @abstractmethod
    async def execute(self, params: dict[str, Any]) -> ToolResult:
        ...

    def to_def(self) -> ToolDef:
        return ToolDef(name=self.name, description=self.description, parameters=self.parameters)


class BaseToolExecutor(ABC):
    """Performs the domain action behind a tool name.

    ``execute`` returns the tool's result or raises; the orchestrator turns
    either outcome into a tool message.
    """

    @abstractmethod
    async def execute(self, name: str, args: dict[str, Any]) -> Any:
        ...

    def get_tool_definitions(self) -> list[ToolDef]:
        return []


class ToolExecutor(BaseToolExecutor):
    """Registry-backed executor for BaseTool instances."""

    def __init__(self, tools: Iterable[BaseTool] | None = None) -> None:
        self._tools: dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)
        logger.info("Tool executor initialized with %d tools", len(self._tools))

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def available_tools(self) -> list[str]:
        return list(self._tools)

    def get_tool_definitions(self) -> list[ToolDef]:
        return [tool.to_def() for tool in self._tools.values()]

    async def execute(self, name: str, args: dict[str, Any]) -> Any:
        tool = self._tools.get(name)
        if tool is None:
            logger.error("Tool execution failed: unknown tool %s", name)
            raise ToolExecutionError(f"Unknown tool: {name}", tool_name=name)

        started = time.perf_counter()
        result = await tool.execute(args)
        elapsed = time.perf_counter() - started
        if not result.success:
            logger.error("Tool %s failed after %.3fs: %s", name, elapsed, result.error)
            raise ToolExecutionError(result.error or f"Tool {name} failed", tool_name=name)

        logger.info("Tool %s completed in %.3fs", name, elapsed)
        return result.content


# ---------------------------------------------------------------------------
# Built-in tool: get current time
# ---------------------------------------------------------------------------


class GetTimeTool(BaseTool):
    """Returns current UTC time as ISO string."""

    @property
    def name(self) -> str:
        return "get_time"

    @property
    def description(self) -> str:
        return "Get the current UTC date and time in ISO format."

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    async def execute(self, params: dict[str, Any]) -> ToolResult:
        now = datetime.now(timezone.utc).isoformat()
        return ToolResult(success=True, content=now)


def get_default_tools() -> list[BaseTool]:
    return [GetTimeTool()]
