"""Tool registration, schema export, and execution layer.

This package provides the ToolRegistry the orchestrator dispatches model
tool calls through, the ToolSpec type, and the built-in tools.
"""

import logging

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.tools.builtin import XClient, calculator_tool, create_x_tool
from toolchat_server.tools.registry import ToolRegistry
from toolchat_server.tools.types import (
    ToolDeclaration,
    ToolInvocationResult,
    ToolSpec,
    render_result,
)

logger = logging.getLogger(__name__)


def build_default_registry(settings: ToolchatServerSettings) -> ToolRegistry:
    """Build the registry of built-in tools for the given settings.

    The calculator is always available; the X tool only when x_enabled is set.
    """
    tools = [calculator_tool]
    if settings.x_enabled:
        client = XClient(
            base_url=settings.x_api_base_url,
            bearer_token=settings.x_bearer_token,
        )
        tools.append(create_x_tool(client))
        if not settings.x_bearer_token:
            logger.warning("X tool enabled without a bearer token; calls will fail")

    return ToolRegistry(tools, timeout=settings.tool_timeout)


__all__ = [
    "ToolRegistry",
    "ToolSpec",
    "ToolDeclaration",
    "ToolInvocationResult",
    "build_default_registry",
    "render_result",
]
