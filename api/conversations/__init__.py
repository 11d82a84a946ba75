"""Conversation and messaging API endpoints.

Clients poll GET /conversations/{id}/messages, passing the created_at of
the newest message they hold as `since`.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status, Security
from pydantic import BaseModel

from auth import get_current_user
from conversations import (
    ConversationManager, ConversationNotFoundError,
    InvalidConversationError, InvalidMessageError
)
from listings import ListingNotFoundError
from users import UserNotFoundError

router = APIRouter(
    prefix="/conversations",
    tags=["Conversations"]
)

manager = ConversationManager()

class StartConversationRequest(BaseModel):
    """Request model for opening a conversation about a listing."""
    other_user_id: UUID
    listing_id: UUID

class SendMessageRequest(BaseModel):
    """Request model for sending a message."""
    content: str

@router.get("/")
async def list_conversations(user_id: UUID = Security(get_current_user)):
    """Get the current user's conversations, most recent activity first."""
    return await manager.list_conversations(user_id)

@router.post("/")
async def start_conversation(
    request: StartConversationRequest,
    user_id: UUID = Security(get_current_user)
):
    """Get or create the conversation with another user about a listing."""
    try:
        return await manager.get_or_create_conversation(
            user_id,
            request.other_user_id,
            request.listing_id
        )
    except InvalidConversationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (UserNotFoundError, ListingNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.get("/unread-count")
async def get_unread_count(user_id: UUID = Security(get_current_user)):
    """Get the number of unread messages across all conversations."""
    return {"unread_count": await manager.get_unread_count(user_id)}

@router.get("/{conversation_id}/messages")
async def get_messages(
    conversation_id: UUID,
    since: Optional[datetime] = Query(None),
    user_id: UUID = Security(get_current_user)
):
    """Get messages in a conversation and mark incoming ones read."""
    try:
        return await manager.get_messages(conversation_id, user_id, since=since)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.post("/{conversation_id}/messages")
async def send_message(
    conversation_id: UUID,
    message: SendMessageRequest,
    user_id: UUID = Security(get_current_user)
):
    """Send a message in a conversation."""
    try:
        return await manager.send_message(conversation_id, user_id, message.content)
    except InvalidMessageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

# Export the router
__all__ = ['router']
