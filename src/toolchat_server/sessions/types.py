"""Data types for conversation history.

This module defines the turn and content-part structures stored in a
conversation, plus the summary returned by list operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

Role = Literal["user", "model"]
PartKind = Literal["text", "tool_result", "tool_error"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a UTC datetime as ISO 8601 with a trailing Z."""
    return value.isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class ContentPart:
    """A single piece of turn content.

    Tool results and failures are stored as already-rendered text; raw tool
    call objects never reach the history.
    """

    text: str
    kind: PartKind = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentPart":
        return cls(text=data.get("text", ""), kind=data.get("kind", "text"))


def compose_text(parts: list[ContentPart]) -> str:
    """Render content parts into one string.

    Text parts are concatenated verbatim; each tool part goes on its own line.
    """
    buffer = ""
    after_block = False
    for part in parts:
        if part.kind == "text":
            if after_block and part.text and not part.text.startswith("\n"):
                buffer += "\n"
            if part.text:
                after_block = False
            buffer += part.text
        else:
            if buffer and not buffer.endswith("\n"):
                buffer += "\n"
            buffer += part.text
            after_block = True
    return buffer


@dataclass(frozen=True)
class Turn:
    """One role-tagged message in a conversation."""

    role: Role
    content: tuple[ContentPart, ...]
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def user(cls, text: str, timestamp: datetime | None = None) -> "Turn":
        return cls(role="user", content=(ContentPart(text),), timestamp=timestamp or utc_now())

    @classmethod
    def model(cls, parts: list[ContentPart], timestamp: datetime | None = None) -> "Turn":
        return cls(role="model", content=tuple(parts), timestamp=timestamp or utc_now())

    @property
    def text(self) -> str:
        return compose_text(list(self.content))

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": [part.to_dict() for part in self.content],
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Turn":
        role = data.get("role")
        if role not in ("user", "model"):
            raise ValueError(f"Unknown turn role: {role}")
        return cls(
            role=role,
            content=tuple(ContentPart.from_dict(part) for part in data.get("content", [])),
            timestamp=parse_timestamp(data["timestamp"]),
        )


@dataclass(frozen=True)
class ConversationSummary:
    """Summary of a conversation without its history."""

    id: str
    created_at: datetime
    last_activity_at: datetime
    turn_count: int
