"""
Session API endpoints - list, create, select and delete conversations.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..chat import ChatClientRegistry
from ..models import AIModel, ChatSession, Principal, SessionList
from ..utils.auth import get_current_principal
from .deps import get_chat_registry

router = APIRouter(prefix="/sessions", tags=["sessions"])


class ModelSelection(BaseModel):
    model: AIModel


@router.get("", response_model=SessionList)
async def list_sessions(
    principal: Principal = Depends(get_current_principal),
    registry: ChatClientRegistry = Depends(get_chat_registry),
):
    """Sessions of the current user, most recently updated first."""
    client = await registry.get(principal)
    return client.snapshot()


@router.post("", response_model=ChatSession, status_code=status.HTTP_201_CREATED)
async def create_session(
    principal: Principal = Depends(get_current_principal),
    registry: ChatClientRegistry = Depends(get_chat_registry),
):
    """Start a new chat with the current model."""
    client = await registry.get(principal)
    session = await client.sessions.create_session()
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Error creating new chat"
        )
    return session


@router.put("/model", response_model=SessionList)
async def set_model(
    selection: ModelSelection,
    principal: Principal = Depends(get_current_principal),
    registry: ChatClientRegistry = Depends(get_chat_registry),
):
    """Switch the model used for the next messages."""
    client = await registry.get(principal)
    client.sessions.set_current_model(selection.model.value)
    return client.snapshot()


@router.post("/{session_id}/select", response_model=SessionList)
async def select_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    registry: ChatClientRegistry = Depends(get_chat_registry),
):
    """Make a session the active one."""
    client = await registry.get(principal)
    if not client.sessions.select_session(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return client.snapshot()


@router.delete("/{session_id}", response_model=SessionList)
async def delete_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    registry: ChatClientRegistry = Depends(get_chat_registry),
):
    """Delete a session and its messages."""
    client = await registry.get(principal)
    if client.sessions.get_session(session_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    if not await client.sessions.delete_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Error deleting chat"
        )
    return client.snapshot()
