"""Session stores for conversations.

This module provides the SessionStore base class which handles:
- Creating, listing, retrieving and deleting conversations
- Per-conversation mutual exclusion for turns
- Applying mutations under that exclusion and persisting them

and InMemorySessionStore, the default backend. Backends only implement the
four storage primitives; locking and copy semantics live in the base class.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Literal

from toolchat_server.errors import ConversationBusy, ConversationNotFound
from toolchat_server.sessions.conversation import Conversation

logger = logging.getLogger(__name__)

BusyPolicy = Literal["queue", "reject"]
Mutator = Callable[[Conversation], None]


class ConversationLease:
    """Exclusive access to one conversation, held for the length of a turn.

    Attributes:
        conversation: Snapshot of the conversation taken when the lease was granted
    """

    def __init__(self, store: "SessionStore", conversation: Conversation):
        self._store = store
        self.conversation = conversation

    @property
    def id(self) -> str:
        return self.conversation.id

    async def commit(self, mutator: Mutator) -> Conversation:
        """Apply a mutation to the stored conversation and persist it.

        Returns:
            A copy of the updated conversation

        Raises:
            ConversationNotFound: If the conversation no longer exists
        """
        stored = self._store._load(self.id)
        if stored is None:
            raise ConversationNotFound(self.id)

        working = stored.copy()
        mutator(working)
        self._store._save(working)
        self.conversation = working.copy()
        return working.copy()


class SessionStore(ABC):
    """Keyed storage of conversations with per-conversation exclusion.

    Every conversation handed out is a copy; the stored instance is never
    shared with callers.
    """

    def __init__(self, busy_policy: BusyPolicy = "queue"):
        """Initialize the store.

        Args:
            busy_policy: "queue" to wait for an in-flight turn on the same
                conversation, "reject" to fail fast with ConversationBusy
        """
        self.busy_policy = busy_policy
        self._locks: dict[str, asyncio.Lock] = {}

    @abstractmethod
    def _load(self, conversation_id: str) -> Conversation | None:
        """Load a conversation, or None if it does not exist."""

    @abstractmethod
    def _save(self, conversation: Conversation) -> None:
        """Persist a conversation, replacing any previous version."""

    @abstractmethod
    def _remove(self, conversation_id: str) -> bool:
        """Remove a conversation; return whether one existed."""

    @abstractmethod
    def _load_all(self) -> list[Conversation]:
        """Load every stored conversation."""

    async def create(self) -> Conversation:
        """Create and persist a new, empty conversation."""
        conversation = Conversation(Conversation.generate_id())
        self._save(conversation)
        logger.info(f"Created conversation {conversation.id}")
        return conversation.copy()

    async def get(self, conversation_id: str) -> Conversation:
        """Get a conversation by ID.

        Raises:
            ConversationNotFound: If the conversation doesn't exist
        """
        conversation = self._load(conversation_id)
        if conversation is None:
            raise ConversationNotFound(conversation_id)
        logger.debug(f"Retrieved conversation {conversation_id}")
        return conversation.copy()

    async def list(self) -> list[Conversation]:
        """List all conversations, most recently active first."""
        conversations = self._load_all()
        conversations.sort(key=lambda c: (c.last_activity_at, c.id), reverse=True)
        logger.debug(f"Listed {len(conversations)} conversations")
        return [conversation.copy() for conversation in conversations]

    async def delete(self, conversation_id: str) -> bool:
        """Delete a conversation, waiting for any in-flight turn on it.

        Returns:
            True if a conversation was removed, False if it didn't exist
        """
        lock = self._locks.get(conversation_id)
        if lock is None:
            removed = self._remove(conversation_id)
        else:
            async with lock:
                removed = self._remove(conversation_id)
            self._locks.pop(conversation_id, None)

        if removed:
            logger.info(f"Deleted conversation {conversation_id}")
        return removed

    @asynccontextmanager
    async def lock(self, conversation_id: str) -> AsyncIterator[ConversationLease]:
        """Hold exclusive access to a conversation.

        Yields:
            ConversationLease with a snapshot and a commit method

        Raises:
            ConversationNotFound: If the conversation doesn't exist
            ConversationBusy: Under the "reject" policy, if another lease is held
        """
        if self._load(conversation_id) is None:
            raise ConversationNotFound(conversation_id)

        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        if lock.locked():
            if self.busy_policy == "reject":
                logger.warning(f"Rejected turn on busy conversation {conversation_id}")
                raise ConversationBusy(conversation_id)
            logger.debug(f"Queued behind in-flight turn on {conversation_id}")

        async with lock:
            conversation = self._load(conversation_id)
            if conversation is None:
                raise ConversationNotFound(conversation_id)
            yield ConversationLease(self, conversation.copy())

    async def update(self, conversation_id: str, mutator: Mutator) -> Conversation:
        """Apply a mutation to a conversation under its lock and persist it.

        Returns:
            A copy of the updated conversation

        Raises:
            ConversationNotFound: If the conversation doesn't exist
            ConversationBusy: Under the "reject" policy, if a turn is in flight
        """
        async with self.lock(conversation_id) as lease:
            return await lease.commit(mutator)


class InMemorySessionStore(SessionStore):
    """Session store keeping conversations in a process-local dictionary."""

    def __init__(self, busy_policy: BusyPolicy = "queue"):
        super().__init__(busy_policy)
        self._conversations: dict[str, Conversation] = {}

    def _load(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def _save(self, conversation: Conversation) -> None:
        self._conversations[conversation.id] = conversation.copy()

    def _remove(self, conversation_id: str) -> bool:
        return self._conversations.pop(conversation_id, None) is not None

    def _load_all(self) -> list[Conversation]:
        return list(self._conversations.values())
