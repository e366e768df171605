"""Ollama client wrapper and model provider.

This package provides the async client wrapper for the Ollama API and the
OllamaProvider that adapts its tool-calling chat stream to fragments.
"""

from toolchat_server.ollama.client import OllamaClient
from toolchat_server.ollama.provider import OllamaProvider

__all__ = ["OllamaClient", "OllamaProvider"]
