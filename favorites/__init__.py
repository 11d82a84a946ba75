"""Favorites module for users' saved listings."""

import logging
from typing import Any, Dict, List, Union
from uuid import UUID

import asyncpg

from database import get_pool
from listings import ListingNotFoundError
from listings.serializers import attach_summary

logger = logging.getLogger(__name__)

class FavoriteError(Exception):
    """Base exception for favorite operations."""
    pass

class DuplicateFavoriteError(FavoriteError):
    """Raised when a listing is already in the user's favorites."""
    pass

def favorite_from_row(row) -> Dict[str, Any]:
    """Nest the joined listing_* and seller_* columns of a favorites row."""
    favorite = dict(row)
    seller_id = favorite.pop('seller_id', None)
    seller = {
        'id': seller_id,
        'name': favorite.pop('seller_name', None),
        'image': favorite.pop('seller_image', None)
    }
    attach_summary(favorite, 'listing')
    listing = favorite.get('listing')
    if listing is not None:
        listing['seller_id'] = seller_id
        listing['seller'] = seller
    return favorite

class FavoriteManager:
    """Manager class for favorites."""

    def __init__(self, pool=None):
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def _ensure_listing(self, conn, listing_id):
        exists = await conn.fetchval(
            'SELECT EXISTS(SELECT 1 FROM listings WHERE id = $1)',
            listing_id
        )
        if not exists:
            raise ListingNotFoundError(f"Listing {listing_id} not found")

    async def add_favorite(
        self,
        user_id: Union[str, UUID],
        listing_id: Union[str, UUID]
    ) -> Dict[str, Any]:
        """Add a listing to a user's favorites.

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            DuplicateFavoriteError: If it is already a favorite
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await self._ensure_listing(conn, listing_id)
            try:
                row = await conn.fetchrow(
                    '''
                    INSERT INTO favorites (user_id, listing_id)
                    VALUES ($1, $2)
                    RETURNING id, user_id, listing_id, created_at
                    ''',
                    user_id, listing_id
                )
            except asyncpg.UniqueViolationError:
                raise DuplicateFavoriteError("Listing is already in favorites")

        logger.info(f"User {user_id} favorited listing {listing_id}")
        return dict(row)

    async def remove_favorite(
        self,
        user_id: Union[str, UUID],
        listing_id: Union[str, UUID]
    ) -> bool:
        """Remove a listing from a user's favorites.

        Returns:
            True if a favorite was removed, False if there was none
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                'DELETE FROM favorites WHERE user_id = $1 AND listing_id = $2',
                user_id, listing_id
            )
        return result == 'DELETE 1'

    async def toggle_favorite(
        self,
        user_id: Union[str, UUID],
        listing_id: Union[str, UUID]
    ) -> Dict[str, bool]:
        """Flip a listing's favorite state for a user.

        Returns:
            Dict with 'favorited' giving the new state
        """
        if await self.remove_favorite(user_id, listing_id):
            return {'favorited': False}
        try:
            await self.add_favorite(user_id, listing_id)
        except DuplicateFavoriteError:
            # Added concurrently, the end state is the same
            pass
        return {'favorited': True}

    async def is_favorited(
        self,
        user_id: Union[str, UUID],
        listing_id: Union[str, UUID]
    ) -> bool:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return bool(await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM favorites WHERE user_id = $1 AND listing_id = $2)',
                user_id, listing_id
            ))

    async def get_favorites(self, user_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get a user's favorites, newest first, with each listing and its seller."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT
                    f.id, f.user_id, f.listing_id, f.created_at,
                    l.title AS listing_title,
                    l.artist AS listing_artist,
                    l.type AS listing_type,
                    l.condition AS listing_condition,
                    l.price AS listing_price,
                    l.images AS listing_images,
                    l.image_url AS listing_image_url,
                    l.is_sold AS listing_is_sold,
                    l.is_verified AS listing_is_verified,
                    s.id AS seller_id,
                    s.name AS seller_name,
                    s.image AS seller_image
                FROM favorites f
                JOIN listings l ON l.id = f.listing_id
                JOIN users s ON s.id = l.seller_id
                WHERE f.user_id = $1
                ORDER BY f.created_at DESC
                ''',
                user_id
            )
        return [favorite_from_row(row) for row in rows]

__all__ = [
    'FavoriteManager',
    'FavoriteError',
    'DuplicateFavoriteError',
    'favorite_from_row'
]
