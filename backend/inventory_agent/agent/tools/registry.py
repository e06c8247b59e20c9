"""
Tool Registry for the Agent module.

Holds the closed set of tools the reasoning model may call, renders them for
the model (system-prompt text and chat-completions ``tools`` definitions) and
dispatches the model's tool calls by name.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..types import Tool, ToolSchema


logger = logging.getLogger(__name__)


class ToolNotFoundError(ValueError):
    """The model asked for a tool that is not registered."""


class ToolRegistry:
    """Name-keyed set of tools, iterated in registration order.

    Example:
        >>> registry = ToolRegistry([create_item_lookup_tool(retriever)])
        >>> registry.names()
        ['item_lookup']
        >>> await registry.invoke("item_lookup", '{"query": "oak table"}')
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> Tool:
        """Add ``tool``, replacing any tool registered under the same name."""
        name = tool.schema_.name
        if name in self._tools:
            logger.warning("Replacing registered tool %r", name)
        self._tools[name] = tool
        return tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def list_tools(self) -> List[ToolSchema]:
        return [tool.schema_ for tool in self._tools.values()]

    def openai_tools(self) -> List[Dict[str, Any]]:
        """Registered tools in chat-completions ``tools`` format."""
        return [schema.to_openai() for schema in self.list_tools()]

    def describe(self) -> str:
        """Plain-text tool list for embedding in a system prompt."""
        if not self._tools:
            return "No tools available."
        return "\n".join(
            f"- {schema.name}: {schema.description}" for schema in self.list_tools()
        )

    async def invoke(self, name: str, arguments: str) -> str:
        """Run the named tool on the model's raw argument string.

        Raises:
            ToolNotFoundError: ``name`` is not registered
            Exception: whatever the handler raises, unchanged
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool not found: {name}")

        logger.debug("Invoking tool %s with arguments %s", name, arguments)
        return await tool.handler(arguments)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))
