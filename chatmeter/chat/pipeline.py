"""
Message Exchange Pipeline - one user message in, one assistant message out.

    IDLE -> USER_MESSAGE_APPENDED -> AWAITING_MODEL -> (STREAMING_PARTIAL)* -> FINALIZED
                                   any non-terminal state -> ERRORED

Persistence policy per step:

    user message insert       store-first: failure aborts the exchange
    first-message title       UI-first: failure is logged only
    assistant message insert  UI-first: failure is a warning, no rollback
    session totals update     UI-first: failure is a warning, no rollback

Both transport modes are normalized into the same event sequence
(start, chunk*, done | error) and handled by one consumer.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import AsyncGenerator, AsyncIterator, Dict, List, Optional, Protocol

from ..core.logging_config import ContextLogger
from ..models.chat import ChatSession, Message, Principal, derive_title, utcnow
from ..models.records import MessageRow
from ..storage.interface import ChatStore, ChatStoreError
from .notices import Notifier
from .remote import RemoteModelClient, RemoteModelError
from .streaming import (
    ChunkEvent, DoneEvent, ErrorEvent, StartEvent, StreamEvent, decode_stream,
)
from .usage import estimate

logger = logging.getLogger(__name__)

INCOMPLETE_STREAM_ERROR = "Response ended before completion"


class ExchangeMode(str, Enum):
    BLOCKING = "blocking"
    STREAMING = "streaming"


class ExchangeState(str, Enum):
    IDLE = "idle"
    USER_MESSAGE_APPENDED = "user_message_appended"
    AWAITING_MODEL = "awaiting_model"
    STREAMING_PARTIAL = "streaming_partial"
    FINALIZED = "finalized"
    ERRORED = "errored"


@dataclass
class ExchangeResult:
    """Outcome of one exchange."""
    state: ExchangeState
    session: ChatSession
    assistant_message: Optional[Message] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == ExchangeState.FINALIZED


class SessionSink(Protocol):
    """Receiver of local session updates (the Session Store)."""

    def show_session(self, session: ChatSession) -> None: ...

    def commit_session(self, session: ChatSession) -> None: ...


@dataclass
class _Exchange:
    """Working state of one in-flight exchange."""
    principal: Principal
    session: ChatSession
    assistant: Message
    log: ContextLogger

    def replace_assistant(self, message: Message) -> None:
        self.assistant = message
        self.session = self.session.with_replaced_message(message)


def to_turns(messages: List[Message]) -> List[Dict[str, str]]:
    """Convert local messages to the relay's role/content shape."""
    return [{"role": m.sender, "content": m.content} for m in messages]


class MessageExchangePipeline:
    """
    Runs exchanges for one client. At most one exchange is in flight;
    calls made while ``is_processing`` is set are rejected, not queued.
    """

    def __init__(
        self,
        chat_store: ChatStore,
        remote: RemoteModelClient,
        notifier: Optional[Notifier] = None,
        sink: Optional[SessionSink] = None,
        mode: ExchangeMode = ExchangeMode.STREAMING,
    ):
        self.chat_store = chat_store
        self.remote = remote
        self.notifier = notifier or Notifier()
        self.sink = sink
        self.mode = mode
        self.is_processing = False
        self.state = ExchangeState.IDLE

    def _show(self, session: ChatSession) -> None:
        if self.sink is not None:
            self.sink.show_session(session)

    def _commit(self, session: ChatSession) -> None:
        if self.sink is not None:
            self.sink.commit_session(session)

    async def send_message(
        self,
        content: str,
        *,
        principal: Optional[Principal],
        session: Optional[ChatSession],
        model: str,
        mode: Optional[ExchangeMode] = None,
    ) -> Optional[ExchangeResult]:
        """
        Run one exchange against ``session``.

        Returns:
            ExchangeResult, or None when a precondition was not met
            (no session, no principal, blank input, already processing)
        """
        if session is None or principal is None or not content.strip() or self.is_processing:
            return None

        self.is_processing = True
        self.state = ExchangeState.IDLE
        log = ContextLogger(logger, {"session_id": session.id, "user_id": principal.id})
        try:
            return await self._run(content, principal, session, model, mode or self.mode, log)
        except Exception as e:
            log.error(f"Error in send_message: {e}", exc_info=True)
            self.notifier.error("Error processing message")
            self.state = ExchangeState.ERRORED
            return ExchangeResult(state=self.state, session=session, error=str(e))
        finally:
            self.is_processing = False

    async def _run(
        self,
        content: str,
        principal: Principal,
        session: ChatSession,
        model: str,
        mode: ExchangeMode,
        log: ContextLogger,
    ) -> ExchangeResult:
        user_message = Message(id=str(uuid.uuid4()), content=content, sender="user", model=model)
        try:
            await self.chat_store.insert_message(MessageRow.from_message(user_message, session.id))
        except ChatStoreError as e:
            log.error(f"Error inserting user message: {e}")
            self.notifier.error("Error sending message")
            self.state = ExchangeState.ERRORED
            return ExchangeResult(state=self.state, session=session, error=str(e))
        self.state = ExchangeState.USER_MESSAGE_APPENDED

        is_first_message = not session.messages
        title = derive_title(content) if is_first_message else session.title
        updated = session.with_message(user_message).model_copy(update={"model": model, "title": title})
        self._show(updated)

        if is_first_message:
            try:
                await self.chat_store.update_session(session.id, {"title": title})
            except ChatStoreError as e:
                log.error(f"Error updating session title: {e}")

        turns = to_turns(updated.messages)
        placeholder = Message(id=str(uuid.uuid4()), content="", sender="assistant", model=model)
        exchange = _Exchange(
            principal=principal,
            session=updated.with_message(placeholder),
            assistant=placeholder,
            log=log,
        )
        self.state = ExchangeState.AWAITING_MODEL
        self._show(exchange.session)

        log.info(f"Exchange started: mode={mode.value}, model={model}, turns={len(turns)}")
        if mode == ExchangeMode.STREAMING:
            events = decode_stream(self.remote.stream(turns, principal.id, session.id, model))
        else:
            events = self._blocking_events(turns, principal, session, model, content)
        return await self._consume(exchange, events)

    async def _blocking_events(
        self,
        turns: List[Dict[str, str]],
        principal: Principal,
        session: ChatSession,
        model: str,
        user_text: str,
    ) -> AsyncIterator[StreamEvent]:
        """Present a blocking reply as the event sequence of a stream."""
        reply = await self.remote.complete(turns, principal.id, session.id, model)
        yield StartEvent(model=reply.model)
        if reply.error:
            yield ErrorEvent(error=reply.error)
            return

        # Usage of both sides of the exchange lands on the assistant message
        usage = estimate(user_text, model) + estimate(reply.content, model)
        yield ChunkEvent(content=reply.content)
        yield DoneEvent(tokens=usage.tokens, cost=usage.cost, model=reply.model)

    async def _consume(
        self, exchange: _Exchange, events: AsyncGenerator[StreamEvent, None]
    ) -> ExchangeResult:
        outcome: Optional[StreamEvent] = None
        try:
            async for event in events:
                if isinstance(event, StartEvent):
                    exchange.log.debug(f"Model started responding: {event.model}")
                elif isinstance(event, ChunkEvent):
                    exchange.replace_assistant(exchange.assistant.append_content(event.content))
                    self.state = ExchangeState.STREAMING_PARTIAL
                    self._show(exchange.session)
                elif isinstance(event, (DoneEvent, ErrorEvent)):
                    outcome = event
                    break
        except RemoteModelError as e:
            exchange.log.error(f"Error in model response: {e}")
            return self._fail(exchange, str(e), "Error processing AI response")
        except Exception as e:
            exchange.log.error(f"Unexpected error in model response: {e}", exc_info=True)
            return self._fail(exchange, str(e), "Error processing AI response")
        finally:
            # Releases the HTTP stream when we stop reading early
            await events.aclose()

        if isinstance(outcome, DoneEvent):
            return await self._finalize(exchange, outcome)
        if isinstance(outcome, ErrorEvent):
            return self._fail(exchange, outcome.error, f"AI Error: {outcome.error}")

        exchange.log.warning("Model stream closed without a done event")
        return self._fail(exchange, INCOMPLETE_STREAM_ERROR, INCOMPLETE_STREAM_ERROR)

    def _fail(self, exchange: _Exchange, error: str, notice: str) -> ExchangeResult:
        """Show the error inline; nothing about the reply is persisted."""
        separator = "\n\n" if exchange.assistant.content else ""
        exchange.replace_assistant(exchange.assistant.append_content(f"{separator}Error: {error}"))
        self.notifier.error(notice)
        self._commit(exchange.session)
        self.state = ExchangeState.ERRORED
        return ExchangeResult(
            state=self.state,
            session=exchange.session,
            assistant_message=exchange.assistant,
            error=error,
        )

    async def _finalize(self, exchange: _Exchange, done: DoneEvent) -> ExchangeResult:
        session_id = exchange.session.id
        assistant = exchange.assistant.model_copy(update={
            "tokens": done.tokens,
            "cost": done.cost,
            "model": done.model or exchange.assistant.model,
        })
        exchange.replace_assistant(assistant)

        try:
            await self.chat_store.insert_message(MessageRow.from_message(assistant, session_id))
        except ChatStoreError as e:
            exchange.log.error(f"Error inserting AI message: {e}")
            self.notifier.warning("Error saving response")

        total_tokens = exchange.session.total_tokens + done.tokens
        total_cost = exchange.session.total_cost + done.cost
        updated_at = utcnow()
        try:
            await self.chat_store.update_session(session_id, {
                "title": exchange.session.title,
                "model": exchange.session.model,
                "total_tokens": total_tokens,
                "total_cost": total_cost,
                "updated_at": updated_at,
            })
        except ChatStoreError as e:
            exchange.log.error(f"Error updating session: {e}")
            self.notifier.warning("Error saving chat totals")

        final = exchange.session.model_copy(update={
            "total_tokens": total_tokens,
            "total_cost": total_cost,
            "updated_at": updated_at,
        })
        self._commit(final)
        self.state = ExchangeState.FINALIZED

        exchange.log.info(
            f"Exchange finalized",
            extra={"extra_fields": {
                "tokens": done.tokens,
                "cost": done.cost,
                "model": assistant.model,
                "content_length": len(assistant.content),
            }}
        )
        return ExchangeResult(state=self.state, session=final, assistant_message=assistant)
