"""Conversation orchestrator: the per-turn tool dispatch loop.

One turn moves through these states:

    AWAITING_MODEL -> INTERPRETING_RESPONSE -> COMPLETED
          |
          +-> FAILED (provider error, nothing appended)

While AWAITING_MODEL the history, the new utterance and the tool declarations
go to the model provider. The fragments it returns are then walked in order:
text is kept verbatim, each tool call is executed through the registry and
replaced by a labeled result or error block. Finally the user turn and the
model turn are committed together under the conversation's lock.

Once the model has answered, dispatch and commit run in a shielded task: a
caller that goes away mid-turn cannot leave a side-effecting tool call
executed but unrecorded.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Literal

from toolchat_server.errors import ProviderError
from toolchat_server.services.provider import (
    Fragment,
    ModelProvider,
    TextFragment,
    ToolCallFragment,
)
from toolchat_server.sessions import (
    ContentPart,
    Conversation,
    ConversationLease,
    ConversationSummary,
    SessionStore,
    Turn,
)
from toolchat_server.sessions.types import utc_now
from toolchat_server.tools import ToolInvocationResult, ToolRegistry

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "No response generated"


class TurnState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    INTERPRETING_RESPONSE = "interpreting_response"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TurnEvent:
    """Progress notification emitted while a turn runs."""

    type: Literal["tool_call", "tool_result", "text", "completed"]
    data: dict[str, Any] = field(default_factory=dict)


Observer = Callable[[TurnEvent], Awaitable[None]]


@dataclass(frozen=True)
class TurnResult:
    """Outcome of a completed turn."""

    reply_text: str
    summary: ConversationSummary
    tool_results: list[ToolInvocationResult] = field(default_factory=list)


@dataclass(frozen=True)
class CreatedConversation:
    """A new conversation, with the reply to its first message if one was given."""

    summary: ConversationSummary
    reply: TurnResult | None = None


def render_tool_block(result: ToolInvocationResult) -> ContentPart:
    """Render a tool invocation outcome as a labeled content part."""
    label = result.name or "unknown"
    if result.ok:
        return ContentPart(text=f"[{label}] {result.text}", kind="tool_result")
    return ContentPart(
        text=f"[{label} error: {result.error.kind}] {result.text}",
        kind="tool_error",
    )


class Orchestrator:
    """Runs conversation turns against a model provider and a tool registry.

    The orchestrator also exposes the caller-facing conversation API used by
    the HTTP layer: create, turn, get, list and delete.
    """

    def __init__(
        self,
        store: SessionStore,
        registry: ToolRegistry,
        provider: ModelProvider,
        provider_timeout: float | None = None,
    ):
        """Initialize the Orchestrator.

        Args:
            store: Session store owning all conversations
            registry: Tools advertised to and callable by the model
            provider: Model provider producing reply fragments
            provider_timeout: Optional timeout in seconds for one provider call
        """
        self.store = store
        self.registry = registry
        self.provider = provider
        self.provider_timeout = provider_timeout
        self._in_flight: set[asyncio.Task] = set()

    async def create_conversation(
        self, initial_utterance: str | None = None
    ) -> CreatedConversation:
        """Create a conversation and optionally run its first turn.

        Creation and the first turn are two separate steps. If the first turn
        fails at the provider, the empty conversation is deleted again.

        Raises:
            ProviderError: If the first turn fails at the provider
        """
        conversation = await self.store.create()
        if not initial_utterance:
            return CreatedConversation(summary=conversation.summary())

        try:
            reply = await self.turn(conversation.id, initial_utterance)
        except ProviderError:
            await self.store.delete(conversation.id)
            raise
        return CreatedConversation(summary=reply.summary, reply=reply)

    async def turn(
        self,
        conversation_id: str,
        utterance: str,
        observer: Observer | None = None,
    ) -> TurnResult:
        """Run one user turn on a conversation.

        Args:
            conversation_id: The conversation to continue
            utterance: The user's new message
            observer: Optional async callback receiving TurnEvents

        Returns:
            TurnResult with the reply text and the updated summary

        Raises:
            ConversationNotFound: If the conversation doesn't exist
            ConversationBusy: If the store rejects concurrent turns and one is in flight
            ProviderError: If the model provider fails; nothing is appended
        """
        async with self.store.lock(conversation_id) as lease:
            received_at = utc_now()
            history = list(lease.conversation.turns)
            fragments = await self._await_model(conversation_id, history, utterance)

            task = asyncio.create_task(
                self._complete_turn(lease, utterance, received_at, fragments, observer)
            )
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                # Keep the lock until the dispatched tools are recorded
                logger.warning(
                    f"Caller abandoned turn on {conversation_id}; finishing it in the background"
                )
                while not task.done():
                    try:
                        await asyncio.wait({task})
                    except asyncio.CancelledError:
                        continue
                if not task.cancelled() and task.exception() is not None:
                    logger.error(
                        f"Abandoned turn on {conversation_id} failed: {task.exception()}"
                    )
                raise

    async def get_conversation(self, conversation_id: str) -> Conversation:
        """Get a conversation with its full history.

        Raises:
            ConversationNotFound: If the conversation doesn't exist
        """
        return await self.store.get(conversation_id)

    async def list_conversations(self) -> list[ConversationSummary]:
        conversations = await self.store.list()
        return [conversation.summary() for conversation in conversations]

    async def delete_conversation(self, conversation_id: str) -> bool:
        return await self.store.delete(conversation_id)

    async def _await_model(
        self, conversation_id: str, history: list[Turn], utterance: str
    ) -> list[Fragment]:
        logger.debug(f"Turn on {conversation_id}: {TurnState.AWAITING_MODEL.value}")
        call = self.provider.generate(history, utterance, self.registry.describe_all())
        try:
            if self.provider_timeout is None:
                fragments = await call
            else:
                fragments = await asyncio.wait_for(call, timeout=self.provider_timeout)
        except ProviderError as e:
            logger.error(f"Turn on {conversation_id} {TurnState.FAILED.value}: {e}")
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"Turn on {conversation_id} {TurnState.FAILED.value}: provider timed out")
            raise ProviderError(
                f"Model provider timed out after {self.provider_timeout}s"
            ) from e
        except Exception as e:
            logger.error(f"Turn on {conversation_id} {TurnState.FAILED.value}: {e}")
            raise ProviderError(f"Model provider failed: {e}") from e

        if not isinstance(fragments, list) or not all(
            isinstance(fragment, (TextFragment, ToolCallFragment)) for fragment in fragments
        ):
            logger.error(f"Turn on {conversation_id} {TurnState.FAILED.value}: malformed response")
            raise ProviderError("Model provider returned a malformed response")
        return fragments

    async def _complete_turn(
        self,
        lease: ConversationLease,
        utterance: str,
        received_at: datetime,
        fragments: list[Fragment],
        observer: Observer | None,
    ) -> TurnResult:
        logger.debug(f"Turn on {lease.id}: {TurnState.INTERPRETING_RESPONSE.value}")
        parts: list[ContentPart] = []
        tool_results: list[ToolInvocationResult] = []

        for fragment in fragments:
            if isinstance(fragment, TextFragment):
                if not fragment.text:
                    continue
                parts.append(ContentPart(fragment.text))
                await self._notify(observer, TurnEvent("text", {"text": fragment.text}))
                continue

            await self._notify(
                observer,
                TurnEvent("tool_call", {"name": fragment.name, "arguments": fragment.arguments}),
            )
            result = await self.registry.invoke(fragment.name, fragment.arguments)
            tool_results.append(result)
            block = render_tool_block(result)
            parts.append(block)
            await self._notify(
                observer,
                TurnEvent(
                    "tool_result",
                    {
                        "name": result.name,
                        "ok": result.ok,
                        "error": result.error.kind if result.error else None,
                        "text": block.text,
                    },
                ),
            )

        if not parts:
            parts.append(ContentPart(NO_RESPONSE_TEXT))

        user_turn = Turn.user(utterance, timestamp=received_at)
        model_turn = Turn.model(parts)
        updated = await lease.commit(
            lambda conversation: conversation.append_exchange(user_turn, model_turn)
        )

        result = TurnResult(
            reply_text=model_turn.text,
            summary=updated.summary(),
            tool_results=tool_results,
        )
        failures = sum(1 for r in tool_results if not r.ok)
        logger.info(
            f"Turn on {lease.id} {TurnState.COMPLETED.value}: "
            f"{len(tool_results)} tool call(s), {failures} failed, "
            f"{len(updated.turns)} turns total"
        )
        await self._notify(
            observer,
            TurnEvent(
                "completed",
                {"reply": result.reply_text, "turn_count": result.summary.turn_count},
            ),
        )
        return result

    @staticmethod
    async def _notify(observer: Observer | None, event: TurnEvent) -> None:
        if observer is None:
            return
        try:
            await observer(event)
        except Exception as e:
            # Observer failures never abort the turn
            logger.warning(f"Turn observer failed on {event.type} event: {e}")
