"""Conversations router for conversation CRUD and turns.

This module provides REST API endpoints for:
- Creating conversations (optionally running a first turn)
- Listing, retrieving and deleting conversations
- Running a turn and returning the complete reply
- Running a turn with progress streamed via SSE
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sse_starlette.sse import EventSourceResponse

from toolchat_server.dependencies import get_orchestrator
from toolchat_server.errors import (
    ConversationBusy,
    ConversationNotFound,
    ProviderError,
    ToolchatError,
)
from toolchat_server.models.conversations import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationSummaryResponse,
    CreateConversationRequest,
    CreateConversationResponse,
    DeleteConversationResponse,
    ErrorEvent,
    ToolCallResponse,
    TurnEventPayload,
    TurnRequest,
    TurnResultResponse,
)
from toolchat_server.services import Orchestrator, TurnEvent, TurnResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])

# Streamed turns keep running after a client disconnects
_background_turns: set[asyncio.Task] = set()


def _finish_background_turn(task: asyncio.Task) -> None:
    """Drop a finished streamed turn and retrieve its outcome."""
    _background_turns.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(
            f"Streamed turn {task.get_name()} ended with {type(error).__name__}: {error}"
        )


def _error(status_code: int, code: str, message: str, **details) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": {"code": code, "message": message, "details": details}},
    )


def _http_error(e: ToolchatError) -> HTTPException:
    """Map an orchestrator error to the HTTP error response."""
    if isinstance(e, ConversationNotFound):
        return _error(
            status.HTTP_404_NOT_FOUND,
            "conversation_not_found",
            str(e),
            conversation_id=e.conversation_id,
        )
    if isinstance(e, ConversationBusy):
        return _error(
            status.HTTP_409_CONFLICT,
            "conversation_busy",
            str(e),
            conversation_id=e.conversation_id,
        )
    if isinstance(e, ProviderError):
        return _error(status.HTTP_502_BAD_GATEWAY, "provider_error", str(e))
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", str(e))


def _turn_response(result: TurnResult) -> TurnResultResponse:
    return TurnResultResponse(
        reply=result.reply_text,
        conversation=ConversationSummaryResponse.from_summary(result.summary),
        tool_calls=[
            ToolCallResponse(
                name=r.name,
                ok=r.ok,
                error=r.error.kind if r.error else None,
                text=r.text,
            )
            for r in result.tool_results
        ],
    )


@router.post(
    "",
    response_model=CreateConversationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new conversation",
)
async def create_conversation(
    request: CreateConversationRequest,
    orchestrator: Annotated[Orchestrator, Depends(get_orchestrator)],
) -> CreateConversationResponse:
    """Create a conversation, running a first turn if an initial message is given.

    Raises:
        HTTPException: 502 if the first turn fails at the model provider
    """
    try:
        created = await orchestrator.create_conversation(request.initial_message)
    except ToolchatError as e:
        logger.warning(f"Conversation creation failed: {e}")
        raise _http_error(e)

    summary = ConversationSummaryResponse.from_summary(created.summary)
    return CreateConversationResponse(
        **summary.model_dump(),
        reply=created.reply.reply_text if created.reply else None,
    )


@router.get(
    "",
    response_model=ConversationListResponse,
    summary="List all conversations",
)
async def list_conversations(
    orchestrator: Annotated[Orchestrator, Depends(get_orchestrator)],
) -> ConversationListResponse:
    """List all conversations, most recently active first."""
    summaries = await orchestrator.list_conversations()
    return ConversationListResponse(
        conversations=[ConversationSummaryResponse.from_summary(s) for s in summaries]
    )


@router.get(
    "/{conversation_id}",
    response_model=ConversationDetailResponse,
    summary="Get a conversation with its history",
)
async def get_conversation(
    conversation_id: str,
    orchestrator: Annotated[Orchestrator, Depends(get_orchestrator)],
) -> ConversationDetailResponse:
    """Get a conversation including its full turn history.

    Raises:
        HTTPException: 404 if the conversation doesn't exist
    """
    try:
        conversation = await orchestrator.get_conversation(conversation_id)
    except ConversationNotFound as e:
        logger.warning(f"Conversation {conversation_id} not found")
        raise _http_error(e)
    return ConversationDetailResponse.from_conversation(conversation)


@router.delete(
    "/{conversation_id}",
    response_model=DeleteConversationResponse,
    summary="Delete a conversation",
)
async def delete_conversation(
    conversation_id: str,
    orchestrator: Annotated[Orchestrator, Depends(get_orchestrator)],
) -> DeleteConversationResponse:
    """Delete a conversation permanently.

    Raises:
        HTTPException: 404 if the conversation doesn't exist
    """
    deleted = await orchestrator.delete_conversation(conversation_id)
    if not deleted:
        logger.warning(f"Conversation {conversation_id} not found")
        raise _http_error(ConversationNotFound(conversation_id))
    return DeleteConversationResponse(deleted=True)


@router.post(
    "/{conversation_id}/turns",
    response_model=TurnResultResponse,
    summary="Send a message and receive the complete reply",
)
async def create_turn(
    conversation_id: str,
    request: TurnRequest,
    orchestrator: Annotated[Orchestrator, Depends(get_orchestrator)],
) -> TurnResultResponse:
    """Run one turn: the model may call tools before the reply is returned.

    Raises:
        HTTPException: 404 if the conversation doesn't exist, 409 if it is
            busy (reject policy), 502 if the model provider fails
    """
    try:
        result = await orchestrator.turn(conversation_id, request.message)
    except ToolchatError as e:
        logger.warning(f"Turn on {conversation_id} failed: {e}")
        raise _http_error(e)
    return _turn_response(result)


@router.post(
    "/{conversation_id}/turns/stream",
    summary="Send a message and stream turn progress via SSE",
)
async def stream_turn(
    conversation_id: str,
    request: TurnRequest,
    orchestrator: Annotated[Orchestrator, Depends(get_orchestrator)],
) -> EventSourceResponse:
    """Run one turn and stream its progress via Server-Sent Events.

    SSE Events:
        - text: A text fragment from the model
        - tool_call: The model asked for a tool
        - tool_result: A tool call finished (successfully or not)
        - completed: The turn was committed; carries the full reply
        - error: The turn failed; nothing was appended

    Raises:
        HTTPException: 404 if the conversation doesn't exist
    """
    try:
        await orchestrator.get_conversation(conversation_id)
    except ConversationNotFound as e:
        raise _http_error(e)

    queue: asyncio.Queue[TurnEvent | None] = asyncio.Queue()

    async def run_turn() -> TurnResult:
        try:
            return await orchestrator.turn(
                conversation_id, request.message, observer=queue.put
            )
        finally:
            await queue.put(None)

    task = asyncio.create_task(run_turn(), name=f"turn:{conversation_id}")
    _background_turns.add(task)
    task.add_done_callback(_finish_background_turn)

    async def event_generator():
        """Relay turn events until the turn finishes."""
        while True:
            event = await queue.get()
            if event is None:
                break
            payload = TurnEventPayload(type=event.type, data=event.data)
            yield {"event": event.type, "data": payload.model_dump_json()}

        try:
            task.result()
        except ToolchatError as e:
            logger.warning(f"Streamed turn on {conversation_id} failed: {e}")
            code = _http_error(e).detail["error"]["code"]
            error_event = ErrorEvent(
                code=code,
                message=str(e),
                details={"conversation_id": conversation_id},
            )
            yield {"event": "error", "data": error_event.model_dump_json()}
        except Exception as e:
            logger.error(f"Streamed turn on {conversation_id} crashed: {e}", exc_info=True)
            error_event = ErrorEvent(code="internal_error", message=str(e))
            yield {"event": "error", "data": error_event.model_dump_json()}

    return EventSourceResponse(event_generator())
