"""Orders module for marketplace checkout.

An order is placed for a single listing. Placing it records the sale and
marks the listing sold in the same transaction, so a listing can only ever
be bought once.
"""
import logging
from typing import Dict, List, Optional, Any, Union
from uuid import UUID

import asyncpg
from asyncpg.pool import Pool

from database import get_pool
from listings.serializers import attach_summary

logger = logging.getLogger(__name__)

ORDER_STATUS_PROCESSING = 'processing'

ORDER_SELECT = '''
    SELECT
        o.*,
        l.title AS listing_title,
        l.artist AS listing_artist,
        l.images AS listing_images,
        l.image_url AS listing_image_url,
        l.price AS listing_price,
        s.name AS seller_name,
        s.email AS seller_email,
        s.image AS seller_image,
        b.name AS buyer_name,
        b.image AS buyer_image
    FROM orders o
    JOIN listings l ON l.id = o.listing_id
    JOIN users s ON s.id = o.seller_id
    JOIN users b ON b.id = o.buyer_id
'''

class OrderError(Exception):
    """Base class for order-related errors."""
    pass

class ListingNotFoundError(OrderError):
    """Raised when the requested listing does not exist."""
    pass

class ListingAlreadySoldError(OrderError):
    """Raised when the requested listing has already been sold."""
    pass

class InvalidOrderError(OrderError):
    """Raised when order data fails validation."""
    pass

class DuplicateOrderNumberError(OrderError):
    """Raised when the order number is already in use."""
    pass

class OrderNotFoundError(OrderError):
    """Raised when an order is not found."""
    pass

def order_from_row(row) -> Dict[str, Any]:
    """Convert a row from ORDER_SELECT into a nested order dict."""
    order = dict(row)
    for prefix in ('listing', 'seller', 'buyer'):
        attach_summary(order, prefix)
    return order

class OrderManager:
    """Manages order placement and order history."""

    def __init__(self, pool: Optional[Pool] = None) -> None:
        """Initialize order manager.

        Args:
            pool: Optional database connection pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def create_order(
        self,
        buyer_id: Union[str, UUID],
        listing_id: Union[str, UUID],
        order_number: str
    ) -> Dict[str, Any]:
        """Place an order for a listing.

        The listing row is locked, checked, the order inserted and the
        listing flagged sold inside one transaction.

        Args:
            buyer_id: The purchasing user
            listing_id: The listing being bought
            order_number: Client supplied order reference, must be unique

        Returns:
            Dict containing the order with listing and seller summaries

        Raises:
            InvalidOrderError: If fields are missing or the buyer owns the listing
            ListingNotFoundError: If the listing doesn't exist
            ListingAlreadySoldError: If the listing is already sold
            DuplicateOrderNumberError: If order_number is taken
        """
        order_number = (order_number or '').strip()
        if not listing_id or not order_number:
            raise InvalidOrderError("Listing ID and order number are required")

        await self.ensure_pool()

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    listing = await conn.fetchrow(
                        '''
                        SELECT id, seller_id, price, is_sold
                        FROM listings
                        WHERE id = $1
                        FOR UPDATE
                        ''',
                        listing_id
                    )
                    if not listing:
                        raise ListingNotFoundError(f"Listing {listing_id} not found")
                    if listing['is_sold']:
                        raise ListingAlreadySoldError(f"Listing {listing_id} is already sold")
                    if str(listing['seller_id']) == str(buyer_id):
                        raise InvalidOrderError("You cannot buy your own listing")

                    order_id = await conn.fetchval(
                        '''
                        INSERT INTO orders (
                            order_number, amount, status, buyer_id, seller_id, listing_id
                        ) VALUES ($1, $2, $3, $4, $5, $6)
                        RETURNING id
                        ''',
                        order_number,
                        listing['price'],
                        ORDER_STATUS_PROCESSING,
                        buyer_id,
                        listing['seller_id'],
                        listing_id
                    )

                    await conn.execute(
                        '''
                        UPDATE listings
                        SET is_sold = true, updated_at = now()
                        WHERE id = $1
                        ''',
                        listing_id
                    )
        except asyncpg.UniqueViolationError:
            raise DuplicateOrderNumberError(f"Order number {order_number} already exists")

        logger.info(f"Order {order_number} placed by {buyer_id}, listing {listing_id} sold")
        return await self.get_order(order_id)

    async def get_order(
        self,
        order_id: Union[str, UUID],
        user_id: Optional[Union[str, UUID]] = None
    ) -> Dict[str, Any]:
        """Get an order by ID.

        Args:
            order_id: The order UUID
            user_id: If given, the order must belong to this buyer or seller

        Raises:
            OrderNotFoundError: If the order doesn't exist or isn't visible to user_id
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(ORDER_SELECT + ' WHERE o.id = $1', order_id)

        if not row:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if user_id is not None and str(user_id) not in (str(row['buyer_id']), str(row['seller_id'])):
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order_from_row(row)

    async def get_orders_for_buyer(self, buyer_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get a buyer's orders, newest first."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                ORDER_SELECT + ' WHERE o.buyer_id = $1 ORDER BY o.created_at DESC',
                buyer_id
            )
        return [order_from_row(row) for row in rows]

    async def get_sales_for_seller(self, seller_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get orders placed on a seller's listings, newest first."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                ORDER_SELECT + ' WHERE o.seller_id = $1 ORDER BY o.created_at DESC',
                seller_id
            )
        return [order_from_row(row) for row in rows]

__all__ = [
    'OrderManager',
    'OrderError',
    'ListingNotFoundError',
    'ListingAlreadySoldError',
    'InvalidOrderError',
    'DuplicateOrderNumberError',
    'OrderNotFoundError',
    'ORDER_STATUS_PROCESSING',
    'order_from_row'
]
