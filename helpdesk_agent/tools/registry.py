"""Tool definitions and the per-agent registry.

A tool is a named text-in/text-out callable.  The registry keeps tools in
registration order, resolves names by exact match, and exports
LangChain ``StructuredTool`` objects so the chat model can be bound to
them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field, create_model

from helpdesk_agent.errors import ToolResolutionError


@dataclass(frozen=True)
class Tool:
    """A named function the agent may call with a single text argument."""

    name: str
    description: str
    func: Callable[[str], str]
    input_description: str = "Input text for the tool."

    def invoke(self, tool_input: str) -> str:
        return self.func(tool_input)

    def args_schema(self) -> type[BaseModel]:
        return create_model(
            f"{self.name}_input",
            input=(str, Field(..., description=self.input_description)),
        )


class ToolRegistry:
    """Ordered, immutable-after-build set of tools for one agent."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def resolve(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolResolutionError(
                f"Agent requested unknown tool {name!r}; registered: {', '.join(self._tools) or 'none'}"
            )
        return tool

    def names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def as_langchain_tools(self) -> list[StructuredTool]:
        return [
            StructuredTool.from_function(
                func=self._build_function(tool),
                name=tool.name,
                description=tool.description,
                args_schema=tool.args_schema(),
            )
            for tool in self._tools.values()
        ]

    @staticmethod
    def _build_function(tool: Tool) -> Callable[..., str]:
        def _callable(input: str) -> str:  # noqa: A002 (schema field name)
            return tool.invoke(input)

        return _callable
