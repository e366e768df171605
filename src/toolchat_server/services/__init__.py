"""Business logic services for toolchat-server.

This package contains the model provider contract and the Orchestrator that
runs the per-turn tool dispatch loop.
"""

from toolchat_server.services.orchestrator import (
    NO_RESPONSE_TEXT,
    CreatedConversation,
    Orchestrator,
    TurnEvent,
    TurnResult,
    TurnState,
)
from toolchat_server.services.provider import (
    Fragment,
    ModelProvider,
    TextFragment,
    ToolCallFragment,
)

__all__ = [
    "Orchestrator",
    "TurnEvent",
    "TurnResult",
    "TurnState",
    "CreatedConversation",
    "NO_RESPONSE_TEXT",
    "ModelProvider",
    "Fragment",
    "TextFragment",
    "ToolCallFragment",
]
