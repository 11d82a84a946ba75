"""Reviews module for seller ratings.

A buyer may review a seller once per listing they bought from that seller.
Seller statistics are recomputed from every review on each read.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID

import asyncpg

from database import get_pool
from listings import ListingNotFoundError
from listings.serializers import attach_summary

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

class ReviewError(Exception):
    """Base exception for review operations."""
    pass

class InvalidReviewError(ReviewError):
    """Raised when review data fails validation."""
    pass

class ReviewNotAllowedError(ReviewError):
    """Raised when the reviewer never bought the listing from the seller."""
    pass

class DuplicateReviewError(ReviewError):
    """Raised when the reviewer already reviewed this seller for this listing."""
    pass

class SellerNotFoundError(ReviewError):
    """Raised when the seller being reviewed doesn't exist."""
    pass

def average_rating(ratings: List[int]) -> float:
    """Arithmetic mean rounded half-up to one decimal place, 0 for no ratings."""
    if not ratings:
        return 0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))

def compute_review_stats(ratings: Iterable[int]) -> Dict[str, Any]:
    """Summarize a seller's ratings.

    Returns:
        Dict containing:
            - total_reviews: Number of ratings
            - average_rating: Mean rounded to one decimal
            - rating_breakdown: Count per star, 5 down to 1
    """
    ratings = list(ratings)
    return {
        'total_reviews': len(ratings),
        'average_rating': average_rating(ratings),
        'rating_breakdown': [
            {'star': star, 'count': sum(1 for rating in ratings if rating == star)}
            for star in range(MAX_RATING, MIN_RATING - 1, -1)
        ]
    }

def review_from_row(row) -> Dict[str, Any]:
    review = dict(row)
    attach_summary(review, 'reviewer')
    attach_summary(review, 'listing')
    return review

class ReviewManager:
    """Manager class for seller reviews."""

    def __init__(self, pool=None):
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def create_review(
        self,
        reviewer_id: Union[str, UUID],
        seller_id: Union[str, UUID],
        listing_id: Union[str, UUID],
        rating: int,
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        """Review a seller for a purchased listing.

        Args:
            reviewer_id: The reviewing buyer
            seller_id: The seller being reviewed
            listing_id: The listing the reviewer bought
            rating: Whole stars from 1 to 5
            comment: Optional free text

        Returns:
            The created review with reviewer and listing summaries

        Raises:
            InvalidReviewError: If rating is out of range, the reviewer is the seller,
                or the listing belongs to another seller
            ListingNotFoundError: If the listing doesn't exist
            ReviewNotAllowedError: If the reviewer has no order for the listing
            DuplicateReviewError: If a review already exists for the triple
        """
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidReviewError("Rating must be a whole number")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidReviewError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        if not listing_id:
            raise InvalidReviewError("Listing ID is required")
        if str(reviewer_id) == str(seller_id):
            raise InvalidReviewError("You cannot review yourself")

        comment = (comment or '').strip() or None

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            listing = await conn.fetchrow(
                'SELECT id, seller_id FROM listings WHERE id = $1',
                listing_id
            )
            if not listing:
                raise ListingNotFoundError(f"Listing {listing_id} not found")
            if str(listing['seller_id']) != str(seller_id):
                raise InvalidReviewError("Listing does not belong to this seller")

            purchased = await conn.fetchval(
                '''
                SELECT EXISTS(
                    SELECT 1 FROM orders
                    WHERE buyer_id = $1 AND seller_id = $2 AND listing_id = $3
                )
                ''',
                reviewer_id, seller_id, listing_id
            )
            if not purchased:
                raise ReviewNotAllowedError("You can only review sellers you have bought from")

            existing = await conn.fetchval(
                '''
                SELECT id FROM reviews
                WHERE reviewer_id = $1 AND seller_id = $2 AND listing_id = $3
                ''',
                reviewer_id, seller_id, listing_id
            )
            if existing:
                raise DuplicateReviewError("You have already reviewed this seller for this listing")

            try:
                review_id = await conn.fetchval(
                    '''
                    INSERT INTO reviews (rating, comment, seller_id, reviewer_id, listing_id)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id
                    ''',
                    rating, comment, seller_id, reviewer_id, listing_id
                )
            except asyncpg.UniqueViolationError:
                raise DuplicateReviewError("You have already reviewed this seller for this listing")

            row = await conn.fetchrow(
                '''
                SELECT r.*,
                    u.name AS reviewer_name, u.image AS reviewer_image,
                    l.title AS listing_title, l.artist AS listing_artist,
                    l.images AS listing_images, l.image_url AS listing_image_url
                FROM reviews r
                JOIN users u ON u.id = r.reviewer_id
                JOIN listings l ON l.id = r.listing_id
                WHERE r.id = $1
                ''',
                review_id
            )

        logger.info(f"Review {review_id} ({rating} stars) left for seller {seller_id}")
        return review_from_row(row)

    async def get_seller_reviews(
        self,
        seller_id: Union[str, UUID],
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """Get a seller's reviews and rating statistics.

        Statistics always cover every review; limit only trims the returned list.

        Returns:
            Dict with seller, stats (including total_listings) and reviews, newest first

        Raises:
            SellerNotFoundError: If the seller doesn't exist
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            seller = await conn.fetchrow(
                'SELECT id, name, image, created_at FROM users WHERE id = $1',
                seller_id
            )
            if not seller:
                raise SellerNotFoundError(f"Seller {seller_id} not found")

            rows = await conn.fetch(
                '''
                SELECT r.*,
                    u.name AS reviewer_name, u.image AS reviewer_image,
                    l.title AS listing_title, l.artist AS listing_artist,
                    l.images AS listing_images, l.image_url AS listing_image_url
                FROM reviews r
                JOIN users u ON u.id = r.reviewer_id
                JOIN listings l ON l.id = r.listing_id
                WHERE r.seller_id = $1
                ORDER BY r.created_at DESC
                ''',
                seller_id
            )

            total_listings = await conn.fetchval(
                'SELECT COUNT(*) FROM listings WHERE seller_id = $1',
                seller_id
            )

        stats = compute_review_stats(row['rating'] for row in rows)
        stats['total_listings'] = total_listings or 0

        if limit is not None:
            rows = rows[:max(1, int(limit))]

        return {
            'seller': dict(seller),
            'stats': stats,
            'reviews': [review_from_row(row) for row in rows]
        }

__all__ = [
    'ReviewManager',
    'ReviewError',
    'InvalidReviewError',
    'ReviewNotAllowedError',
    'DuplicateReviewError',
    'SellerNotFoundError',
    'compute_review_stats',
    'average_rating'
]
