"""
Relay endpoint - the remote model the chat client calls.
Answers with one JSON object, or with framed events when the caller
accepts ``text/event-stream``.
"""

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from typing import List, Optional

from ..relay import RelayService
from .deps import get_relay_service

router = APIRouter(prefix="/functions/v1", tags=["relay"])


class RelayTurn(BaseModel):
    role: str
    content: str


class RelayRequest(BaseModel):
    messages: List[RelayTurn]
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    model: Optional[str] = None


@router.post("/chat")
async def relay_chat(
    request: RelayRequest,
    stream: bool = Query(False, description="Force Server-Sent Events output"),
    accept: Optional[str] = Header(None),
    relay: RelayService = Depends(get_relay_service),
):
    """
    Forward a conversation to the model provider.

    Returns:
        {"content", "tokens", "cost", "model"} or {"error", "content"},
        or an event stream of start / chunk / done / error blocks
    """
    messages = [turn.model_dump() for turn in request.messages]

    if stream or (accept and "text/event-stream" in accept):
        return StreamingResponse(
            relay.stream(messages, request.model, request.user_id, request.session_id),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            }
        )

    return await relay.complete(messages, request.model, request.user_id, request.session_id)
