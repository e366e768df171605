"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.ollama import OllamaClient, OllamaProvider
from toolchat_server.routers import conversations, health, tools
from toolchat_server.services import Orchestrator
from toolchat_server.sessions import build_session_store
from toolchat_server.tools import build_default_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    The Ollama client, the tool registry, the session store and the
    orchestrator are created once at startup and stored in app.state for
    reuse across all requests.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ToolchatServerSettings = app.state.settings

    app.state.ollama_client = OllamaClient(host=settings.ollama_host)
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    if await app.state.ollama_client.check_connection():
        logger.info("Successfully connected to Ollama")
        try:
            if not await app.state.ollama_client.has_model(settings.model):
                logger.warning(f"Model {settings.model} is not installed in Ollama")
        except Exception as e:
            logger.warning(f"Could not check installed models: {e}")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    registry = build_default_registry(settings)
    store = build_session_store(settings)
    app.state.orchestrator = Orchestrator(
        store=store,
        registry=registry,
        provider=OllamaProvider(app.state.ollama_client, model=settings.model),
        provider_timeout=settings.provider_timeout,
    )
    logger.info(
        f"Orchestrator ready: model={settings.model}, storage={settings.storage}, "
        f"busy_policy={settings.busy_policy}, tools={registry.names}"
    )

    yield

    if hasattr(app.state, "ollama_client"):
        await app.state.ollama_client.close()
        logger.info("Ollama client closed")


def create_app(settings: ToolchatServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional ToolchatServerSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from toolchat_server.dependencies import get_settings

        settings = get_settings()

    from toolchat_server import __version__

    app = FastAPI(
        title="toolchat-server",
        description="Headless FastAPI server for tool-calling LLM conversations",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(tools.router)
    app.include_router(conversations.router)

    return app
