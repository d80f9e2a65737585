"""
Chat API endpoints - send messages and read notices.
Streaming mode pushes a snapshot of the active session after every update.
"""

import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from typing import List, Optional, Set

from ..chat import ChatClientRegistry, ExchangeMode, ExchangeState, SessionStore, encode_event
from ..models import ChatSession, Message, Principal
from ..utils.auth import get_current_principal
from .deps import get_chat_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

# Exchanges keep running after a streaming client disconnects
_exchange_tasks: Set[asyncio.Task] = set()


class SendMessageRequest(BaseModel):
    content: str
    mode: Optional[ExchangeMode] = None


class ExchangeResponse(BaseModel):
    state: ExchangeState
    session: ChatSession
    assistant_message: Optional[Message] = None
    error: Optional[str] = None


class NoticeResponse(BaseModel):
    level: str
    message: str


@router.post("/message", response_model=ExchangeResponse)
async def send_message(
    request: SendMessageRequest,
    stream: bool = Query(False, description="Stream session snapshots as Server-Sent Events"),
    principal: Principal = Depends(get_current_principal),
    registry: ChatClientRegistry = Depends(get_chat_registry),
):
    """
    Send a message in the active session.

    Returns:
        ExchangeResponse (stream=false), StreamingResponse (stream=true),
        or 204 when the message was not accepted (blank, or no active session)
    """
    client = await registry.get(principal)
    if client.is_processing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A message is already being processed")
    if not request.content.strip() or client.sessions.current_session is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    if not stream:
        result = await client.send_message(request.content, mode=request.mode)
        if result is None:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return ExchangeResponse(
            state=result.state,
            session=result.session,
            assistant_message=result.assistant_message,
            error=result.error,
        )

    queue: asyncio.Queue = asyncio.Queue()

    def on_change(store: SessionStore) -> None:
        if store.current_session is not None:
            queue.put_nowait(store.current_session)

    client.sessions.add_listener(on_change)
    task = asyncio.create_task(client.send_message(request.content, mode=request.mode))
    _exchange_tasks.add(task)
    task.add_done_callback(_exchange_tasks.discard)
    task.add_done_callback(lambda _: queue.put_nowait(None))

    async def event_generator():
        try:
            while True:
                session = await queue.get()
                if session is None:
                    break
                yield encode_event("session", session.model_dump(mode="json"))

            result = task.result()
            if result is not None:
                yield encode_event("result", {
                    "state": result.state.value,
                    "error": result.error,
                    "session_id": result.session.id,
                })
        finally:
            client.sessions.remove_listener(on_change)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


@router.get("/notices", response_model=List[NoticeResponse])
async def get_notices(
    principal: Principal = Depends(get_current_principal),
    registry: ChatClientRegistry = Depends(get_chat_registry),
):
    """Pending user notices (errors, warnings, confirmations), oldest first."""
    client = await registry.get(principal)
    return [NoticeResponse(level=n.level, message=n.message) for n in client.notifier.drain()]
