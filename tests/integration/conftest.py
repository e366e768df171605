"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that ensure
proper test isolation and mocking for API endpoint tests.
"""

from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaClient for all integration tests.

    This fixture patches the OllamaClient class before the app is created,
    ensuring the lifespan uses our mock instead of creating a real client.
    Tests script the model by replacing ``chat_stream`` on the returned mock.
    """
    with patch("toolchat_server.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True
        mock_instance.has_model.return_value = True

        # Return the mock instance when OllamaClient is instantiated
        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def script_model(mock_ollama_client):
    """Script the model's replies, one list of messages per turn.

    Each message is an Ollama ``message`` dict; the last chunk of every turn
    carries the done marker. The request kwargs of every call are recorded.
    """
    calls: list[dict] = []

    def script(*turns: list[dict]):
        remaining = list(turns)

        async def chat_stream(**kwargs):
            calls.append(kwargs)
            messages = remaining.pop(0) if remaining else [{"content": ""}]
            for index, message in enumerate(messages):
                yield {
                    "model": "llama3.2:latest",
                    "message": {"role": "assistant", **message},
                    "done": index == len(messages) - 1,
                }

        mock_ollama_client.chat_stream = chat_stream
        return calls

    return script


def tool_call(name: str, arguments: dict) -> dict:
    """An Ollama assistant message carrying one tool call."""
    return {"content": "", "tool_calls": [{"function": {"name": name, "arguments": arguments}}]}


@pytest.fixture
def tool_call_message():
    return tool_call


@pytest.fixture(autouse=True)
def clean_session_dir(test_settings):
    """Ensure the conversations directory is clean before each test.

    Args:
        test_settings: The test settings fixture from parent conftest
    """
    sessions_dir = test_settings.resolved_sessions_dir

    if sessions_dir.exists():
        for session_file in sessions_dir.glob("*.json"):
            session_file.unlink()

    yield

    if sessions_dir.exists():
        for session_file in sessions_dir.glob("*.json"):
            session_file.unlink()
