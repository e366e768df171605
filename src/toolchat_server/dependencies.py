"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject common dependencies like settings and the
orchestrator.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.services import Orchestrator


@lru_cache
def get_settings() -> ToolchatServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the TOOLCHAT_ prefix.

    Returns:
        ToolchatServerSettings: The application configuration settings.
    """
    return ToolchatServerSettings()


def get_orchestrator(request: Request) -> Orchestrator:
    """Get the Orchestrator from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        Orchestrator: The orchestrator created during application startup.

    Raises:
        HTTPException: If the orchestrator is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "orchestrator"):
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": "not_ready",
                    "message": "Orchestrator not initialized",
                    "details": {},
                }
            },
        )
    return request.app.state.orchestrator
