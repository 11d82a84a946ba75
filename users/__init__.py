"""Users module for accounts and public seller profiles."""

import logging
from typing import Dict, Any, Optional, Union
from uuid import UUID

import asyncpg

from auth.passwords import hash_password
from database import get_pool
from listings.serializers import listing_from_row

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Columns safe to expose about another user
PUBLIC_USER_COLUMNS = 'id, name, image, created_at'

class UserError(Exception):
    """Base exception for user operations."""
    pass

class UserNotFoundError(UserError):
    """Raised when a user is not found."""
    pass

class DuplicateEmailError(UserError):
    """Raised when signing up with an email that is already registered."""
    pass

class InvalidUserError(UserError):
    """Raised when signup data fails validation."""
    pass

class UserManager:
    """Manager class for handling user accounts."""

    def __init__(self, pool=None):
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def create_user(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """Register a new user.

        Raises:
            InvalidUserError: If a field is missing or the password is too short
            DuplicateEmailError: If the email is taken
        """
        email = (email or '').strip().lower()
        name = (name or '').strip()
        if not name or not email:
            raise InvalidUserError("Name and email are required")
        if '@' not in email:
            raise InvalidUserError("Invalid email address")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidUserError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        await self.ensure_pool()
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    '''
                    INSERT INTO users (name, email, password_hash)
                    VALUES ($1, $2, $3)
                    RETURNING id, name, email, image, created_at
                    ''',
                    name, email, hash_password(password)
                )
        except asyncpg.UniqueViolationError:
            raise DuplicateEmailError(f"Email {email} is already registered")

        logger.info(f"Created user {row['id']}")
        return dict(row)

    async def get_user(self, user_id: Union[str, UUID]) -> Dict[str, Any]:
        """Get a user by id (without the password hash)."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                'SELECT id, name, email, image, created_at FROM users WHERE id = $1',
                user_id
            )
        if not row:
            raise UserNotFoundError(f"User {user_id} not found")
        return dict(row)

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                'SELECT id, name, email, image, created_at FROM users WHERE email = $1',
                email.strip().lower()
            )
        return dict(row) if row else None

    async def get_public_profile(self, user_id: Union[str, UUID]) -> Dict[str, Any]:
        """Get a seller's public profile with their unsold listings.

        Returns:
            Dict with id, name, image, created_at, listings and counts
            (total listings ever created, reviews received)

        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            user = await conn.fetchrow(
                f'''
                SELECT {PUBLIC_USER_COLUMNS},
                    (SELECT COUNT(*) FROM listings WHERE seller_id = u.id) AS listing_count,
                    (SELECT COUNT(*) FROM reviews WHERE seller_id = u.id) AS review_count
                FROM users u
                WHERE id = $1
                ''',
                user_id
            )
            if not user:
                raise UserNotFoundError(f"User {user_id} not found")

            listings = await conn.fetch(
                '''
                SELECT * FROM listings
                WHERE seller_id = $1 AND is_sold = false
                ORDER BY created_at DESC
                ''',
                user_id
            )

        return {
            'id': user['id'],
            'name': user['name'],
            'image': user['image'],
            'created_at': user['created_at'],
            'listings': [listing_from_row(row) for row in listings],
            'counts': {
                'listings': user['listing_count'],
                'reviews_received': user['review_count']
            }
        }

__all__ = [
    'UserManager', 'UserError', 'UserNotFoundError',
    'DuplicateEmailError', 'InvalidUserError', 'PUBLIC_USER_COLUMNS'
]
