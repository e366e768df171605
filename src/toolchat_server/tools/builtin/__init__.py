"""Built-in tools shipped with toolchat-server."""

from toolchat_server.tools.builtin.calculator import calculator_tool
from toolchat_server.tools.builtin.x import XClient, create_x_tool

__all__ = ["calculator_tool", "create_x_tool", "XClient"]
