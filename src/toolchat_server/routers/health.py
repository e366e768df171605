"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request

from toolchat_server import __version__
from toolchat_server.models.health import HealthResponse
from toolchat_server.services import Orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report the server version and what the orchestrator is wired to.

    The model provider is asked whether it can reach its backend; a failing
    check is reported as disconnected, never as an error response. Before
    startup has built the orchestrator, provider, tools and storage are empty.
    """
    settings = request.app.state.settings
    orchestrator: Orchestrator | None = getattr(request.app.state, "orchestrator", None)

    provider_connected = None
    tools: list[str] = []
    storage = None
    if orchestrator is not None:
        try:
            provider_connected = await orchestrator.provider.check_connection()
        except Exception as e:
            logger.warning(f"Provider connectivity check failed: {e}")
            provider_connected = False
        tools = orchestrator.registry.names
        storage = settings.storage

    return HealthResponse(
        status="ok",
        version=__version__,
        ollama_connected=provider_connected,
        ollama_host=settings.ollama_host,
        model=settings.model,
        tools=tools,
        storage=storage,
    )
