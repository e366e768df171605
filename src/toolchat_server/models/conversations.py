"""Pydantic models for conversation API requests and responses.

This module defines the request and response schemas for the conversation
CRUD endpoints and the turn endpoints, including the SSE event payloads.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from toolchat_server.sessions import Conversation, ConversationSummary, Turn
from toolchat_server.sessions.types import format_timestamp


class CreateConversationRequest(BaseModel):
    """Request body for creating a new conversation."""

    initial_message: str | None = Field(
        default=None,
        description="Optional first user message; if set, a first turn runs right after creation",
    )


class TurnRequest(BaseModel):
    """Request body for the turn endpoints."""

    message: str = Field(..., min_length=1, description="The user message to send")

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"message": "What is 2 + 2?"}]}
    )


class ConversationSummaryResponse(BaseModel):
    """Summary of a conversation (no history)."""

    id: str = Field(description="Conversation identifier")
    created_at: str = Field(description="ISO 8601 creation timestamp")
    last_activity_at: str = Field(description="ISO 8601 timestamp of the last completed turn")
    turn_count: int = Field(description="Number of turns in the history")

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> "ConversationSummaryResponse":
        return cls(
            id=summary.id,
            created_at=format_timestamp(summary.created_at),
            last_activity_at=format_timestamp(summary.last_activity_at),
            turn_count=summary.turn_count,
        )


class ContentPartResponse(BaseModel):
    kind: str = Field(description="text, tool_result or tool_error")
    text: str


class TurnResponse(BaseModel):
    """A single turn in a conversation's history."""

    role: str = Field(description="user or model")
    text: str = Field(description="The turn's content rendered as one string")
    content: list[ContentPartResponse]
    timestamp: str = Field(description="ISO 8601 timestamp")

    @classmethod
    def from_turn(cls, turn: Turn) -> "TurnResponse":
        return cls(
            role=turn.role,
            text=turn.text,
            content=[ContentPartResponse(kind=p.kind, text=p.text) for p in turn.content],
            timestamp=format_timestamp(turn.timestamp),
        )


class ConversationDetailResponse(ConversationSummaryResponse):
    """A conversation with its full turn history."""

    turns: list[TurnResponse]

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationDetailResponse":
        summary = conversation.summary()
        return cls(
            id=summary.id,
            created_at=format_timestamp(summary.created_at),
            last_activity_at=format_timestamp(summary.last_activity_at),
            turn_count=summary.turn_count,
            turns=[TurnResponse.from_turn(turn) for turn in conversation.turns],
        )


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummaryResponse]


class ToolCallResponse(BaseModel):
    """Outcome of one tool call made during a turn."""

    name: str
    ok: bool
    error: str | None = Field(default=None, description="Failure kind, if the call failed")
    text: str = Field(description="Rendered result or failure message")


class TurnResultResponse(BaseModel):
    """Response body for a completed turn."""

    reply: str = Field(description="The model's final reply text")
    conversation: ConversationSummaryResponse
    tool_calls: list[ToolCallResponse] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "reply": "Let me work that out.\n[calculator] 2 + 2 = 4",
                "conversation": {
                    "id": "a1b2c3d4e5",
                    "created_at": "2025-01-15T10:30:00.000000Z",
                    "last_activity_at": "2025-01-15T10:35:00.000000Z",
                    "turn_count": 2,
                },
                "tool_calls": [
                    {"name": "calculator", "ok": True, "error": None, "text": "2 + 2 = 4"}
                ],
            }
        }
    )


class CreateConversationResponse(ConversationSummaryResponse):
    """Response body for conversation creation."""

    reply: str | None = Field(
        default=None, description="Reply to the initial message, if one was sent"
    )


class DeleteConversationResponse(BaseModel):
    deleted: bool


class TurnEventPayload(BaseModel):
    """Data of a turn SSE event."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class ErrorEvent(BaseModel):
    """SSE event data for errors during a streamed turn."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
