"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from toolchat_server.models.conversations import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationSummaryResponse,
    CreateConversationRequest,
    CreateConversationResponse,
    DeleteConversationResponse,
    TurnRequest,
    TurnResultResponse,
)
from toolchat_server.models.health import HealthResponse
from toolchat_server.models.tools import ToolDeclarationResponse, ToolListResponse

__all__ = [
    "ConversationDetailResponse",
    "ConversationListResponse",
    "ConversationSummaryResponse",
    "CreateConversationRequest",
    "CreateConversationResponse",
    "DeleteConversationResponse",
    "HealthResponse",
    "ToolDeclarationResponse",
    "ToolListResponse",
    "TurnRequest",
    "TurnResultResponse",
]
