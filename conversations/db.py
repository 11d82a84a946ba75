from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncpg

from listings.serializers import attach_summary


def conversation_from_row(row: asyncpg.Record) -> Dict[str, Any]:
    """Nest the joined other_user, listing and last_message columns"""
    conversation = dict(row)
    attach_summary(conversation, 'other_user')
    conversation.pop('other_user_id', None)
    attach_summary(conversation, 'listing')
    attach_summary(conversation, 'last_message')
    conversation.pop('last_message_id', None)
    conversation.setdefault('last_message', None)
    return conversation


def message_from_row(row: asyncpg.Record) -> Dict[str, Any]:
    return attach_summary(dict(row), 'sender')


async def find_conversation(
    conn: asyncpg.Connection,
    user1_id: str,
    user2_id: str,
    listing_id
) -> Optional[asyncpg.Record]:
    """Look up a conversation by its normalized pair and listing"""
    return await conn.fetchrow(
        """
        SELECT id, user1_id, user2_id, listing_id, created_at, updated_at
        FROM conversations
        WHERE user1_id = $1 AND user2_id = $2 AND listing_id = $3
        """,
        user1_id, user2_id, listing_id
    )


async def insert_conversation(
    conn: asyncpg.Connection,
    user1_id: str,
    user2_id: str,
    listing_id
) -> asyncpg.Record:
    """Insert a conversation, raises UniqueViolationError if it already exists"""
    return await conn.fetchrow(
        """
        INSERT INTO conversations (user1_id, user2_id, listing_id)
        VALUES ($1, $2, $3)
        RETURNING id, user1_id, user2_id, listing_id, created_at, updated_at
        """,
        user1_id, user2_id, listing_id
    )


async def get_conversation(conn: asyncpg.Connection, conversation_id) -> Optional[asyncpg.Record]:
    return await conn.fetchrow(
        """
        SELECT id, user1_id, user2_id, listing_id, created_at, updated_at
        FROM conversations
        WHERE id = $1
        """,
        conversation_id
    )


async def get_user_summary(conn: asyncpg.Connection, user_id) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "SELECT id, name, image FROM users WHERE id = $1",
        user_id
    )
    return dict(row) if row else None


async def list_conversations(conn: asyncpg.Connection, user_id) -> List[Dict[str, Any]]:
    """Get a user's conversations, most recent activity first"""
    rows = await conn.fetch(
        """
        SELECT
            c.id, c.listing_id, c.created_at, c.updated_at,
            o.id AS other_user_id,
            o.name AS other_user_name,
            o.image AS other_user_image,
            l.title AS listing_title,
            l.artist AS listing_artist,
            l.images AS listing_images,
            l.image_url AS listing_image_url,
            m.id AS last_message_id,
            m.content AS last_message_content,
            m.created_at AS last_message_created_at,
            m.sender_id AS last_message_sender_id,
            (
                SELECT COUNT(*) FROM messages um
                WHERE um.conversation_id = c.id
                AND um.is_read = false
                AND um.sender_id != $1
            ) AS unread_count
        FROM conversations c
        JOIN users o ON o.id = CASE WHEN c.user1_id = $1 THEN c.user2_id ELSE c.user1_id END
        LEFT JOIN listings l ON l.id = c.listing_id
        LEFT JOIN LATERAL (
            SELECT id, content, created_at, sender_id
            FROM messages
            WHERE conversation_id = c.id
            ORDER BY created_at DESC
            LIMIT 1
        ) m ON true
        WHERE c.user1_id = $1 OR c.user2_id = $1
        ORDER BY c.updated_at DESC
        """,
        user_id
    )
    return [conversation_from_row(row) for row in rows]


async def get_messages(
    conn: asyncpg.Connection,
    conversation_id,
    since: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Get messages in a conversation, oldest first"""
    query = """
        SELECT m.id, m.content, m.sender_id, m.conversation_id, m.is_read, m.created_at,
               u.name AS sender_name, u.image AS sender_image
        FROM messages m
        JOIN users u ON u.id = m.sender_id
        WHERE m.conversation_id = $1
    """
    params: List[Any] = [conversation_id]

    if since:
        query += f" AND m.created_at > ${len(params) + 1}"
        params.append(since)

    query += " ORDER BY m.created_at ASC"

    rows = await conn.fetch(query, *params)
    return [message_from_row(row) for row in rows]


async def mark_read(conn: asyncpg.Connection, conversation_id, reader_id) -> int:
    """Mark messages the other participant sent as read, returns how many changed"""
    result = await conn.execute(
        """
        UPDATE messages
        SET is_read = true
        WHERE conversation_id = $1 AND sender_id != $2 AND is_read = false
        """,
        conversation_id, reader_id
    )
    return int(result.split()[-1])


async def create_message(
    conn: asyncpg.Connection,
    conversation_id,
    sender_id,
    content: str
) -> Dict[str, Any]:
    """Insert a message and return it with the sender's summary"""
    row = await conn.fetchrow(
        """
        WITH inserted AS (
            INSERT INTO messages (content, sender_id, conversation_id)
            VALUES ($1, $2, $3)
            RETURNING id, content, sender_id, conversation_id, is_read, created_at
        )
        SELECT i.*, u.name AS sender_name, u.image AS sender_image
        FROM inserted i
        JOIN users u ON u.id = i.sender_id
        """,
        content, sender_id, conversation_id
    )
    return message_from_row(row)


async def touch_conversation(conn: asyncpg.Connection, conversation_id) -> None:
    await conn.execute(
        "UPDATE conversations SET updated_at = now() WHERE id = $1",
        conversation_id
    )


async def count_unread(conn: asyncpg.Connection, user_id) -> int:
    """Count unread messages addressed to a user across all conversations"""
    count = await conn.fetchval(
        """
        SELECT COUNT(*)
        FROM messages m
        JOIN conversations c ON c.id = m.conversation_id
        WHERE (c.user1_id = $1 OR c.user2_id = $1)
        AND m.sender_id != $1
        AND m.is_read = false
        """,
        user_id
    )
    return count or 0
