"""Pytest configuration and shared fixtures for toolchat-server tests.

This module provides common fixtures used across all test modules,
including test app creation, async client setup, and a scripted model
provider for driving the orchestrator without a real model.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from toolchat_server import create_app
from toolchat_server.config import ToolchatServerSettings
from toolchat_server.services import Orchestrator, TextFragment, ToolCallFragment
from toolchat_server.sessions import InMemorySessionStore
from toolchat_server.tools import ToolRegistry
from toolchat_server.tools.builtin import calculator_tool


class ScriptedProvider:
    """Model provider that replays canned fragment lists.

    Each generate() call pops the next script entry. An entry that is an
    exception instance is raised instead of returned. Every call's inputs
    are recorded in ``calls``.
    """

    def __init__(self, *scripts, delay: float = 0.0):
        self.scripts = list(scripts)
        self.delay = delay
        self.calls: list[dict] = []

    async def generate(self, history, utterance, tools):
        self.calls.append(
            {"history": list(history), "utterance": utterance, "tools": list(tools)}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        script = self.scripts.pop(0) if self.scripts else []
        if isinstance(script, BaseException):
            raise script
        return list(script)

    async def check_connection(self) -> bool:
        return True


@pytest.fixture
def scripted_provider_class():
    return ScriptedProvider


@pytest.fixture
def text():
    return TextFragment


@pytest.fixture
def tool_call():
    return ToolCallFragment


@pytest.fixture
def registry():
    """A registry holding only the calculator."""
    return ToolRegistry([calculator_tool], timeout=5.0)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def make_orchestrator(store, registry):
    """Build an Orchestrator around the given provider."""

    def factory(provider, **kwargs) -> Orchestrator:
        return Orchestrator(
            store=kwargs.pop("store", store),
            registry=kwargs.pop("registry", registry),
            provider=provider,
            **kwargs,
        )

    return factory


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings with isolated temporary directories.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.

    Returns:
        ToolchatServerSettings: Settings instance configured for testing.
    """
    return ToolchatServerSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        model="llama3.2:latest",
        data_dir=str(tmp_path),
        sessions_dir="conversations",
        storage="memory",
        busy_policy="queue",
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
