"""Model provider contract.

The orchestrator only knows a provider as something that turns history, the
new utterance and the tool declarations into an ordered list of fragments.
"""

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from toolchat_server.sessions.types import Turn
from toolchat_server.tools.types import ToolDeclaration


@dataclass(frozen=True)
class TextFragment:
    """Literal text produced by the model."""

    text: str


@dataclass(frozen=True)
class ToolCallFragment:
    """A request from the model to invoke a tool."""

    name: str
    arguments: Any = None


Fragment = TextFragment | ToolCallFragment


class ModelProvider(Protocol):
    """Anything that can answer one turn of a conversation."""

    async def generate(
        self,
        history: Sequence[Turn],
        utterance: str,
        tools: Sequence[ToolDeclaration],
    ) -> list[Fragment]:
        """Return the model's reply as ordered fragments.

        Raises:
            Exception: Any failure; the orchestrator turns it into ProviderError
        """
        ...

    async def check_connection(self) -> bool:
        ...
