"""Conversation class holding one chat's ordered turn history.

This module provides the Conversation class which handles:
- Appending user/model turn pairs
- Keeping last_activity_at strictly increasing
- Converting to and from the persisted dictionary layout
"""

import copy
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

from toolchat_server.sessions.types import (
    ConversationSummary,
    Turn,
    format_timestamp,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"


class Conversation:
    """A single conversation and its history.

    Turns are append-only. The only way to drop history is to delete the
    whole conversation through the session store.

    A conversation is persisted with the following structure:
    {
        "metadata": {"id": ..., "created_at": ..., "last_activity_at": ..., ...},
        "turns": [{"role": ..., "content": [...], "timestamp": ...}, ...]
    }
    """

    def __init__(
        self,
        conversation_id: str,
        turns: list[Turn] | None = None,
        created_at: datetime | None = None,
        last_activity_at: datetime | None = None,
    ):
        now = utc_now()
        self.id = conversation_id
        self.turns: list[Turn] = list(turns or [])
        self.created_at = created_at or now
        self.last_activity_at = last_activity_at or self.created_at

    @staticmethod
    def generate_id() -> str:
        """Generate a new unique conversation ID.

        Returns:
            10-character hexadecimal string
        """
        return uuid.uuid4().hex[:10]

    def append_exchange(self, user_turn: Turn, model_turn: Turn) -> None:
        """Append a user turn and its paired model turn.

        Both are appended together so the history always holds complete pairs.

        Raises:
            ValueError: If the roles are not user then model
        """
        if user_turn.role != "user" or model_turn.role != "model":
            raise ValueError("An exchange must be a user turn followed by a model turn")
        self.turns.append(user_turn)
        self.turns.append(model_turn)
        self.touch()

    def touch(self) -> None:
        """Advance last_activity_at, strictly past its previous value."""
        now = utc_now()
        if now <= self.last_activity_at:
            now = self.last_activity_at + timedelta(microseconds=1)
        self.last_activity_at = now

    def summary(self) -> ConversationSummary:
        return ConversationSummary(
            id=self.id,
            created_at=self.created_at,
            last_activity_at=self.last_activity_at,
            turn_count=len(self.turns),
        )

    def copy(self) -> "Conversation":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert conversation to a dictionary for JSON serialization."""
        return {
            "metadata": {
                "id": self.id,
                "created_at": format_timestamp(self.created_at),
                "last_activity_at": format_timestamp(self.last_activity_at),
                "turn_count": len(self.turns),
                "format_version": FORMAT_VERSION,
            },
            "turns": [turn.to_dict() for turn in self.turns],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Conversation":
        """Build a conversation from its persisted dictionary.

        Raises:
            KeyError: If required metadata is missing
            ValueError: If a turn has an unknown role
        """
        metadata = data["metadata"]
        return cls(
            conversation_id=metadata["id"],
            turns=[Turn.from_dict(turn) for turn in data.get("turns", [])],
            created_at=parse_timestamp(metadata["created_at"]),
            last_activity_at=parse_timestamp(metadata["last_activity_at"]),
        )

    def __repr__(self) -> str:
        return f"Conversation(id={self.id!r}, turns={len(self.turns)})"
