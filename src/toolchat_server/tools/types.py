"""Data types for tool registration and invocation.

This module defines the ToolSpec registered with the ToolRegistry, the
declaration shape advertised to the model, and the transient request/result
pair produced while a turn dispatches tool calls.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel

from toolchat_server.errors import ToolError

ToolHandler = Callable[[Any], Any]


def render_result(value: Any) -> str:
    """Render a tool result value as text for the reply.

    Strings are used as-is, pydantic models and plain data are rendered as JSON.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, ensure_ascii=False, default=str)


@dataclass(frozen=True)
class ToolSpec:
    """A named capability exposed to the model.

    Attributes:
        name: Unique identifier used for advertisement and dispatch
        description: Natural-language hint shown to the model
        arguments: Pydantic model describing the accepted arguments
        handler: Callable receiving a validated ``arguments`` instance
        render: Turns a handler result into reply text
        side_effects: True when a call acts on the outside world
    """

    name: str
    description: str
    arguments: type[BaseModel]
    handler: ToolHandler
    render: Callable[[Any], str] = render_result
    side_effects: bool = False


@dataclass(frozen=True)
class ToolDeclaration:
    """Model-facing description of a tool."""

    name: str
    description: str
    parameters: dict[str, Any]

    def to_ollama(self) -> dict[str, Any]:
        """Convert to Ollama's function-tool format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class ToolInvocationResult:
    """Outcome of a single tool invocation.

    Exactly one of ``value`` (on success) or ``error`` (on failure) is meaningful.
    """

    name: str
    value: Any = None
    error: ToolError | None = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None
