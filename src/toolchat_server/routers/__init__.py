"""FastAPI routers for API endpoints.

This package contains all route handlers organized by resource type.
Each router module defines endpoints for a specific domain (health, tools, conversations).
"""

from toolchat_server.routers import conversations, health, tools

__all__ = [
    "conversations",
    "health",
    "tools",
]
