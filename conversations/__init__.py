"""Conversations module for buyer/seller messaging.

A conversation belongs to exactly two users and one listing. The pair is
stored sorted so (a, b) and (b, a) resolve to the same row, and a unique
index on (user1_id, user2_id, listing_id) settles concurrent first contact.
Clients poll for new messages.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import UUID

import asyncpg

from database import get_pool
from listings import ListingNotFoundError
from users import UserNotFoundError
from . import db

logger = logging.getLogger(__name__)

class ConversationError(Exception):
    """Base exception for conversation operations."""
    pass

class ConversationNotFoundError(ConversationError):
    """Raised when a conversation doesn't exist or the user isn't part of it."""
    pass

class InvalidConversationError(ConversationError):
    """Raised when a conversation can't be started with the given users."""
    pass

class InvalidMessageError(ConversationError):
    """Raised when a message fails validation."""
    pass

def normalize_pair(a: Union[str, UUID], b: Union[str, UUID]) -> Tuple[str, str]:
    """Return the two user ids as canonical strings, sorted ascending.

    Raises:
        ValueError: If either id is not a UUID
    """
    first, second = str(UUID(str(a))), str(UUID(str(b)))
    return (first, second) if first <= second else (second, first)

def is_participant(conversation, user_id: Union[str, UUID]) -> bool:
    return str(user_id) in (str(conversation['user1_id']), str(conversation['user2_id']))

def other_participant(conversation, user_id: Union[str, UUID]):
    if str(conversation['user1_id']) == str(user_id):
        return conversation['user2_id']
    return conversation['user1_id']

class ConversationManager:
    """Manager class for conversations and their messages."""

    def __init__(self, pool=None):
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def get_or_create_conversation(
        self,
        current_user_id: Union[str, UUID],
        other_user_id: Union[str, UUID],
        listing_id: Union[str, UUID]
    ) -> Dict[str, Any]:
        """Find the conversation between two users about a listing, creating it if needed.

        Calling this repeatedly, in either user order, returns the same
        conversation.

        Returns:
            Dict with id, other_user and listing_id

        Raises:
            InvalidConversationError: If ids are missing or invalid, or the users are the same
            UserNotFoundError: If the other user doesn't exist
            ListingNotFoundError: If the listing doesn't exist
        """
        if not other_user_id or not listing_id:
            raise InvalidConversationError("Other user ID and listing ID are required")

        try:
            user1_id, user2_id = normalize_pair(current_user_id, other_user_id)
        except ValueError:
            raise InvalidConversationError("Invalid user ID")
        if user1_id == user2_id:
            raise InvalidConversationError("Cannot start a conversation with yourself")

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            other_user = await db.get_user_summary(conn, other_user_id)
            if not other_user:
                raise UserNotFoundError(f"User {other_user_id} not found")

            listing_exists = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM listings WHERE id = $1)',
                listing_id
            )
            if not listing_exists:
                raise ListingNotFoundError(f"Listing {listing_id} not found")

            conversation = await db.find_conversation(conn, user1_id, user2_id, listing_id)
            if not conversation:
                try:
                    conversation = await db.insert_conversation(conn, user1_id, user2_id, listing_id)
                    logger.info(f"Created conversation {conversation['id']} for listing {listing_id}")
                except asyncpg.UniqueViolationError:
                    # Another request created it first
                    conversation = await db.find_conversation(conn, user1_id, user2_id, listing_id)
                    if not conversation:
                        raise

        return {
            'id': conversation['id'],
            'other_user': other_user,
            'listing_id': conversation['listing_id']
        }

    async def list_conversations(self, user_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get a user's conversations with the latest message and unread count."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await db.list_conversations(conn, user_id)

    async def _get_participant_conversation(self, conn, conversation_id, user_id):
        conversation = await db.get_conversation(conn, conversation_id)
        if not conversation or not is_participant(conversation, user_id):
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    async def get_messages(
        self,
        conversation_id: Union[str, UUID],
        user_id: Union[str, UUID],
        since: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Get a conversation's messages and mark the other party's messages read.

        Args:
            conversation_id: The conversation UUID
            user_id: The reading user, must be a participant
            since: Only return messages created after this time (polling)

        Returns:
            Dict with conversation (id, other_user, listing_id) and messages

        Raises:
            ConversationNotFoundError: If missing or user_id is not a participant
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            conversation = await self._get_participant_conversation(conn, conversation_id, user_id)
            other_user = await db.get_user_summary(conn, other_participant(conversation, user_id))
            messages = await db.get_messages(conn, conversation_id, since)
            marked = await db.mark_read(conn, conversation_id, user_id)

        if marked:
            logger.debug(f"Marked {marked} messages read in conversation {conversation_id}")

        return {
            'conversation': {
                'id': conversation['id'],
                'other_user': other_user,
                'listing_id': conversation['listing_id']
            },
            'messages': messages
        }

    async def send_message(
        self,
        conversation_id: Union[str, UUID],
        sender_id: Union[str, UUID],
        content: str
    ) -> Dict[str, Any]:
        """Append a message to a conversation.

        Raises:
            InvalidMessageError: If content is empty
            ConversationNotFoundError: If missing or sender_id is not a participant
        """
        content = (content or '').strip()
        if not content:
            raise InvalidMessageError("Message content is required")

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await self._get_participant_conversation(conn, conversation_id, sender_id)
            async with conn.transaction():
                message = await db.create_message(conn, conversation_id, sender_id, content)
                await db.touch_conversation(conn, conversation_id)

        return message

    async def get_unread_count(self, user_id: Union[str, UUID]) -> int:
        """Total unread messages addressed to user_id."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await db.count_unread(conn, user_id)

__all__ = [
    'ConversationManager',
    'ConversationError',
    'ConversationNotFoundError',
    'InvalidConversationError',
    'InvalidMessageError',
    'normalize_pair',
    'is_participant',
    'other_participant'
]
