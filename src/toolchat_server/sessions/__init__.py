"""Conversation storage for toolchat-server.

This package provides the conversation data model, the session store
contract with per-conversation locking, and its in-memory and JSON file
backends.
"""

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.sessions.conversation import Conversation
from toolchat_server.sessions.json_store import JsonFileSessionStore
from toolchat_server.sessions.store import (
    ConversationLease,
    InMemorySessionStore,
    SessionStore,
)
from toolchat_server.sessions.types import (
    ContentPart,
    ConversationSummary,
    Turn,
    compose_text,
)


def build_session_store(settings: ToolchatServerSettings) -> SessionStore:
    """Create the session store selected by settings.storage."""
    if settings.storage == "json":
        return JsonFileSessionStore(
            settings.resolved_sessions_dir, busy_policy=settings.busy_policy
        )
    return InMemorySessionStore(busy_policy=settings.busy_policy)


__all__ = [
    # Core classes
    "Conversation",
    "SessionStore",
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "ConversationLease",
    # History types
    "Turn",
    "ContentPart",
    "ConversationSummary",
    "compose_text",
    "build_session_store",
]
