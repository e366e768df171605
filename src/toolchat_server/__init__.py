"""toolchat-server: Headless FastAPI server for tool-calling LLM conversations.

This package provides a REST API and SSE streaming interface for holding
conversations with a model that can call tools mid-conversation and fold
their results back into its replies.
"""

__version__ = "0.1.0"

from toolchat_server.app import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
