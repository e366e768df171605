"""Ollama-backed model provider.

Translates conversation history into Ollama chat messages, streams the
response with tool declarations attached, and returns the text and tool
calls as fragments in the order they arrived.
"""

import logging
from typing import Any, Sequence

from toolchat_server.errors import ProviderError
from toolchat_server.ollama.client import OllamaClient
from toolchat_server.services.provider import Fragment, TextFragment, ToolCallFragment
from toolchat_server.sessions.types import Turn
from toolchat_server.tools.types import ToolDeclaration

logger = logging.getLogger(__name__)

_ROLE_MAP = {"user": "user", "model": "assistant"}


def convert_history_to_ollama_format(
    history: Sequence[Turn], utterance: str
) -> list[dict[str, Any]]:
    """Convert stored turns plus the new utterance to Ollama messages."""
    messages = [{"role": _ROLE_MAP[turn.role], "content": turn.text} for turn in history]
    messages.append({"role": "user", "content": utterance})
    return messages


def _tool_call_fragment(call: Any) -> ToolCallFragment:
    function = call.get("function") if isinstance(call, dict) else getattr(call, "function", None)
    if function is None:
        return ToolCallFragment(name="", arguments=None)
    if isinstance(function, dict):
        return ToolCallFragment(
            name=function.get("name") or "", arguments=function.get("arguments")
        )
    return ToolCallFragment(
        name=getattr(function, "name", "") or "",
        arguments=getattr(function, "arguments", None),
    )


class OllamaProvider:
    """ModelProvider implementation for an Ollama server."""

    def __init__(
        self,
        client: OllamaClient,
        model: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.options = options

    async def check_connection(self) -> bool:
        return await self.client.check_connection()

    async def generate(
        self,
        history: Sequence[Turn],
        utterance: str,
        tools: Sequence[ToolDeclaration],
    ) -> list[Fragment]:
        """Stream one reply from Ollama and collect it as fragments.

        Raises:
            ProviderError: If the stream fails or ends without a done marker
        """
        messages = convert_history_to_ollama_format(history, utterance)
        fragments: list[Fragment] = []
        pending_text: list[str] = []
        done = False

        def flush_text() -> None:
            if pending_text:
                fragments.append(TextFragment("".join(pending_text)))
                pending_text.clear()

        try:
            async for chunk in self.client.chat_stream(
                model=self.model,
                messages=messages,
                tools=[tool.to_ollama() for tool in tools],
                options=self.options,
            ):
                message = chunk.get("message") or {}
                content = message.get("content") or ""
                if content:
                    pending_text.append(content)

                for call in message.get("tool_calls") or []:
                    flush_text()
                    fragments.append(_tool_call_fragment(call))

                if chunk.get("done"):
                    done = True
                    break
        except Exception as e:
            raise ProviderError(f"Failed to get response from Ollama: {e}") from e

        if not done:
            raise ProviderError("Stream ended without completion marker")

        flush_text()
        logger.debug(f"Ollama returned {len(fragments)} fragment(s)")
        return fragments
