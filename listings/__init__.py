"""Listings module for managing marketplace listings.

This module provides functionality for:
- Creating and editing listings
- Browsing and searching available listings
- Tracking listing views
- Recording authenticity scores
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Union, Any

from config import settings_conf
from database import get_pool
from .search import search_listings
from .serializers import listing_from_row, encode_images, decode_images
from .verification import calculate_authenticity_score, score_band

logger = logging.getLogger(__name__)

LISTING_TYPES = ('VINYL', 'CD', 'CASSETTE', 'MERCH', 'EQUIPMENT')

CONDITIONS = ('BRAND_NEW', 'LIKE_NEW', 'LIGHTLY_USED', 'WELL_USED', 'HEAVILY_USED')

REQUIRED_FIELDS = ('title', 'artist', 'description', 'type', 'condition', 'price')

# listings.price is DECIMAL(10,2)
MAX_PRICE = Decimal("99999999.99")
PRICE_QUANTUM = Decimal("0.01")

NULLABLE_FIELDS = {'year', 'genre', 'label'}

# User-mutable fields for listings
MUTABLE_FIELDS = {
    'title',
    'artist',
    'description',
    'type',
    'condition',
    'price',
    'images',
    'year',
    'genre',
    'label'
}

# System-managed fields (not directly mutable by users)
SYSTEM_FIELDS = {
    'id',
    'seller_id',
    'image_url',
    'is_sold',
    'is_verified',
    'verified_by_official',
    'authenticity_score',
    'views',
    'created_at',
    'updated_at'
}

SELLER_DETAIL_COLUMNS = """
    s.name AS seller_name,
    s.email AS seller_email,
    s.image AS seller_image,
    s.created_at AS seller_created_at
"""

class ListingError(Exception):
    """Base exception for listing operations."""
    pass

class ListingNotFoundError(ListingError):
    """Raised when a listing is not found."""
    pass

class InvalidListingError(ListingError):
    """Raised when listing data fails validation."""
    pass

class ListingPermissionError(ListingError):
    """Raised when someone other than the seller tries to modify a listing."""
    pass

def validate_listing_fields(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate and normalize listing fields.

    Args:
        fields: Raw field values
        partial: If True only the supplied fields are checked (edits)

    Returns:
        Normalized copy of the fields

    Raises:
        InvalidListingError: If a value is missing or invalid
    """
    clean = dict(fields)

    if partial:
        cleared = sorted(name for name, value in clean.items() if value is None and name not in NULLABLE_FIELDS)
        if cleared:
            raise InvalidListingError(f"Fields cannot be cleared: {', '.join(cleared)}")
    else:
        missing = [name for name in REQUIRED_FIELDS if clean.get(name) in (None, '')]
        if missing:
            raise InvalidListingError(f"Missing required fields: {', '.join(missing)}")
        if not clean.get('images'):
            raise InvalidListingError("At least one image is required")

    for name in ('title', 'artist', 'description'):
        if name in clean:
            value = (clean[name] or '').strip()
            if not value:
                raise InvalidListingError(f"{name} cannot be empty")
            clean[name] = value

    if 'type' in clean:
        clean['type'] = str(clean['type']).upper()
        if clean['type'] not in LISTING_TYPES:
            raise InvalidListingError(
                f"Invalid type {fields['type']!r}, expected one of {', '.join(LISTING_TYPES)}"
            )

    if 'condition' in clean:
        clean['condition'] = str(clean['condition']).upper()
        if clean['condition'] not in CONDITIONS:
            raise InvalidListingError(
                f"Invalid condition {fields['condition']!r}, expected one of {', '.join(CONDITIONS)}"
            )

    if 'price' in clean:
        try:
            clean['price'] = Decimal(str(clean['price']))
        except (InvalidOperation, ValueError):
            raise InvalidListingError(f"Invalid price: {fields['price']!r}")
        if not clean['price'].is_finite() or clean['price'] <= 0:
            raise InvalidListingError("Price must be greater than 0")
        if clean['price'] > MAX_PRICE:
            raise InvalidListingError(f"Price cannot exceed {MAX_PRICE}")
        if clean['price'] != clean['price'].quantize(PRICE_QUANTUM):
            raise InvalidListingError("Price cannot have more than 2 decimal places")

    if 'images' in clean:
        images = [str(image).strip() for image in (clean['images'] or []) if str(image).strip()]
        if not images:
            raise InvalidListingError("At least one image is required")
        clean['images'] = images

    if clean.get('year') is not None:
        try:
            clean['year'] = int(clean['year'])
        except (TypeError, ValueError):
            raise InvalidListingError(f"Invalid year: {fields['year']!r}")
        if clean['year'] <= 0:
            raise InvalidListingError("Year must be positive")

    for name in ('genre', 'label'):
        if name in clean and clean[name] is not None:
            clean[name] = clean[name].strip() or None

    return clean

class ListingManager:
    """Manager class for handling listing operations."""

    def __init__(self, pool=None):
        """Initialize the listing manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def create_listing(
        self,
        seller_id: Union[str, uuid.UUID],
        title: str,
        artist: str,
        description: str,
        type: str,
        condition: str,
        price: Union[Decimal, float, str],
        images: List[str],
        year: Optional[int] = None,
        genre: Optional[str] = None,
        label: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a new listing.

        Args:
            seller_id: The seller's user id
            title: Release or item title
            artist: Artist name
            description: Free-text description
            type: One of LISTING_TYPES
            condition: One of CONDITIONS
            price: Asking price, must be positive
            images: Image URLs, at least one; the first becomes image_url
            year: Optional release year
            genre: Optional genre
            label: Optional record label

        Returns:
            Dict containing the created listing

        Raises:
            InvalidListingError: If validation fails
            ListingError: If the insert fails
        """
        fields = validate_listing_fields({
            'title': title,
            'artist': artist,
            'description': description,
            'type': type,
            'condition': condition,
            'price': price,
            'images': images,
            'year': year,
            'genre': genre,
            'label': label
        })

        await self.ensure_pool()

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    '''
                    INSERT INTO listings (
                        title, artist, description, type, condition, price,
                        images, image_url, year, genre, label, seller_id
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
                    RETURNING *
                    ''',
                    fields['title'],
                    fields['artist'],
                    fields['description'],
                    fields['type'],
                    fields['condition'],
                    fields['price'],
                    encode_images(fields['images']),
                    fields['images'][0],
                    fields['year'],
                    fields['genre'],
                    fields['label'],
                    seller_id
                )
        except Exception as e:
            logger.error(f"Error creating listing: {e}")
            raise ListingError(f"Failed to create listing: {e}")

        logger.info(f"Created listing {row['id']} for seller {seller_id}")
        return listing_from_row(row)

    async def get_listing(self, listing_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Get a listing by ID with its seller's details.

        Raises:
            ListingNotFoundError: If listing doesn't exist
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'''
                SELECT l.*, {SELLER_DETAIL_COLUMNS}
                FROM listings l
                JOIN users s ON s.id = l.seller_id
                WHERE l.id = $1
                ''',
                listing_id
            )

        if not row:
            raise ListingNotFoundError(f"Listing {listing_id} not found")
        return listing_from_row(row)

    async def view_listing(self, listing_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Record a view and return the listing with related listings.

        Related listings share the type or the artist, are unsold and exclude
        the listing itself.

        Returns:
            Dict with 'listing' and 'related'

        Raises:
            ListingNotFoundError: If listing doesn't exist
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'''
                SELECT l.*, {SELLER_DETAIL_COLUMNS}
                FROM listings l
                JOIN users s ON s.id = l.seller_id
                WHERE l.id = $1
                ''',
                listing_id
            )
            if not row:
                raise ListingNotFoundError(f"Listing {listing_id} not found")

            await conn.execute(
                'UPDATE listings SET views = views + 1 WHERE id = $1',
                listing_id
            )

            related = await conn.fetch(
                '''
                SELECT l.*, s.name AS seller_name
                FROM listings l
                JOIN users s ON s.id = l.seller_id
                WHERE l.id != $1
                AND l.is_sold = false
                AND (l.type = $2 OR l.artist = $3)
                ORDER BY l.created_at DESC
                LIMIT $4
                ''',
                listing_id,
                row['type'],
                row['artist'],
                settings_conf['related_listings_limit']
            )

        return {
            'listing': listing_from_row(row),
            'related': [listing_from_row(r) for r in related]
        }

    async def get_listings(
        self,
        search: Optional[str] = None,
        types: Optional[List[str]] = None,
        conditions: Optional[List[str]] = None,
        verified_only: bool = False,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Dict[str, Any]:
        """Get available (unsold) listings, newest first, with pagination metadata.

        limit defaults to default_page_size and is capped at max_page_size.
        """
        if limit is None:
            limit = settings_conf['default_page_size']
        limit = max(1, min(int(limit), settings_conf['max_page_size']))
        offset = max(0, int(offset))

        await self.ensure_pool()
        return await search_listings(
            search_term=search,
            types=[t.upper() for t in types] if types else None,
            conditions=[c.upper() for c in conditions] if conditions else None,
            verified_only=verified_only,
            limit=limit,
            offset=offset,
            pool=self.pool
        )

    async def get_listings_by_seller(
        self,
        seller_id: Union[str, uuid.UUID],
        include_sold: bool = False
    ) -> List[Dict[str, Any]]:
        """Get a seller's listings, newest first."""
        await self.ensure_pool()
        query = 'SELECT * FROM listings WHERE seller_id = $1'
        if not include_sold:
            query += ' AND is_sold = false'
        query += ' ORDER BY created_at DESC'

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, seller_id)
        return [listing_from_row(row) for row in rows]

    async def _get_owned_listing(self, conn, listing_id, editor_id):
        row = await conn.fetchrow(
            'SELECT id, seller_id, artist FROM listings WHERE id = $1',
            listing_id
        )
        if not row:
            raise ListingNotFoundError(f"Listing {listing_id} not found")
        if str(row['seller_id']) != str(editor_id):
            raise ListingPermissionError("Only the seller can modify this listing")
        return row

    async def update_listing(
        self,
        listing_id: Union[str, uuid.UUID],
        editor_id: Union[str, uuid.UUID],
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update the mutable fields of a listing.

        Args:
            listing_id: The listing UUID
            editor_id: The user making the change, must be the seller
            updates: Field values keyed by name. None clears year, genre or label
                and is rejected for the other fields.

        Returns:
            The updated listing

        Raises:
            ListingNotFoundError: If listing doesn't exist
            ListingPermissionError: If editor is not the seller
            InvalidListingError: If a field is not editable or fails validation
        """
        protected = set(updates) & SYSTEM_FIELDS
        if protected:
            raise InvalidListingError(f"Cannot update system fields: {', '.join(sorted(protected))}")
        unknown = set(updates) - MUTABLE_FIELDS
        if unknown:
            raise InvalidListingError(f"Unknown fields: {', '.join(sorted(unknown))}")

        fields = validate_listing_fields(updates, partial=True)

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await self._get_owned_listing(conn, listing_id, editor_id)

        if not fields:
            return await self.get_listing(listing_id)

        async with self.pool.acquire() as conn:
            if 'images' in fields:
                fields['image_url'] = fields['images'][0]
                fields['images'] = encode_images(fields['images'])

            set_clauses = []
            params: List[Any] = [listing_id]
            for name, value in fields.items():
                params.append(value)
                set_clauses.append(f"{name} = ${len(params)}")

            await conn.execute(
                f'''
                UPDATE listings
                SET {", ".join(set_clauses)}, updated_at = now()
                WHERE id = $1
                ''',
                *params
            )

        logger.info(f"Updated listing {listing_id}: {', '.join(sorted(fields))}")
        return await self.get_listing(listing_id)

    async def set_authenticity_score(
        self,
        listing_id: Union[str, uuid.UUID],
        editor_id: Union[str, uuid.UUID],
        score: Union[float, Decimal],
        is_verified: bool = True
    ) -> Dict[str, Any]:
        """Persist an authenticity score on a listing.

        Raises:
            ListingNotFoundError: If listing doesn't exist
            ListingPermissionError: If editor is not the seller
            InvalidListingError: If score is outside 0-100
        """
        try:
            score = Decimal(str(score))
        except (InvalidOperation, ValueError):
            raise InvalidListingError(f"Invalid authenticity score: {score!r}")
        if not score.is_finite() or not Decimal('0') <= score <= Decimal('100'):
            raise InvalidListingError("Authenticity score must be between 0 and 100")

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await self._get_owned_listing(conn, listing_id, editor_id)
            row = await conn.fetchrow(
                '''
                UPDATE listings
                SET authenticity_score = $2, is_verified = $3, updated_at = now()
                WHERE id = $1
                RETURNING *
                ''',
                listing_id,
                score,
                is_verified
            )

        logger.info(f"Listing {listing_id} scored {score} (verified={is_verified})")
        return listing_from_row(row)

    async def score_listing(
        self,
        listing_id: Union[str, uuid.UUID],
        editor_id: Union[str, uuid.UUID],
        photo_count: int = 0,
        has_video: bool = False,
        certificate_count: int = 0,
        is_verified: bool = True,
        rng=None
    ) -> Dict[str, Any]:
        """Compute an authenticity score from uploaded evidence and store it.

        Returns:
            The updated listing
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            owned = await self._get_owned_listing(conn, listing_id, editor_id)

        try:
            score = calculate_authenticity_score(
                owned['artist'],
                photo_count=photo_count,
                has_video=has_video,
                certificate_count=certificate_count,
                rng=rng
            )
        except ValueError as e:
            raise InvalidListingError(str(e))

        return await self.set_authenticity_score(listing_id, editor_id, score, is_verified)

__all__ = [
    'ListingManager',
    'ListingError',
    'ListingNotFoundError',
    'InvalidListingError',
    'ListingPermissionError',
    'LISTING_TYPES',
    'CONDITIONS',
    'MUTABLE_FIELDS',
    'SYSTEM_FIELDS',
    'validate_listing_fields',
    'search_listings',
    'listing_from_row',
    'decode_images',
    'calculate_authenticity_score',
    'score_band'
]
