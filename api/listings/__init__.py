"""Listings API endpoints."""

import logging
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status, Security
from pydantic import BaseModel, Field

from auth import get_current_user
from config import settings_conf
from listings import (
    ListingManager, ListingError, ListingNotFoundError,
    InvalidListingError, ListingPermissionError, score_band
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/listings",
    tags=["Listings"]
)

manager = ListingManager()

# Model definitions
class CreateListingRequest(BaseModel):
    """Request model for creating a listing."""
    title: str
    artist: str
    description: str
    type: str
    condition: str
    price: Decimal
    images: List[str]
    year: Optional[int] = None
    genre: Optional[str] = None
    label: Optional[str] = None

class UpdateListingRequest(BaseModel):
    """Request model for updating a listing. Omitted fields are left alone."""
    title: Optional[str] = None
    artist: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    condition: Optional[str] = None
    price: Optional[Decimal] = None
    images: Optional[List[str]] = None
    year: Optional[int] = None
    genre: Optional[str] = None
    label: Optional[str] = None

class AuthenticityScoreRequest(BaseModel):
    """Request model for scoring a listing.

    Send authenticity_score to store a score directly, or the evidence
    counts to have the server compute one.
    """
    authenticity_score: Optional[float] = None
    photo_count: int = Field(0, ge=0)
    has_video: bool = False
    certificate_count: int = Field(0, ge=0)
    is_verified: bool = True

def listing_error_to_http(e: ListingError) -> HTTPException:
    """Map listing errors to HTTP errors."""
    if isinstance(e, ListingNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ListingPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, InvalidListingError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.error(f"Listing operation failed: {e}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

""" Public Endpoints - No Authentication Required """
@router.get("/")
async def list_listings(
    search: Optional[str] = Query(None),
    type: Optional[List[str]] = Query(None),
    condition: Optional[List[str]] = Query(None),
    verified: bool = Query(False),
    per_page: Optional[int] = Query(None, ge=1),
    page: int = Query(1, ge=1)
):
    """Get available listings with pagination metadata.

    type and condition may be repeated to match any of several values.
    """
    per_page = min(per_page or settings_conf['default_page_size'], settings_conf['max_page_size'])
    offset = (page - 1) * per_page
    try:
        return await manager.get_listings(
            search=search,
            types=type,
            conditions=condition,
            verified_only=verified,
            limit=per_page,
            offset=offset
        )
    except ListingError as e:
        raise listing_error_to_http(e)

@router.get("/{listing_id}")
async def get_listing(listing_id: UUID):
    """Get a listing and related listings. Counts as a view."""
    try:
        return await manager.view_listing(listing_id)
    except ListingError as e:
        raise listing_error_to_http(e)

""" Protected Endpoints - Authentication Required """
@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_listing(
    listing: CreateListingRequest,
    user_id: UUID = Security(get_current_user)
):
    """Create a new listing owned by the current user."""
    try:
        created = await manager.create_listing(
            seller_id=user_id,
            title=listing.title,
            artist=listing.artist,
            description=listing.description,
            type=listing.type,
            condition=listing.condition,
            price=listing.price,
            images=listing.images,
            year=listing.year,
            genre=listing.genre,
            label=listing.label
        )
        return {
            "message": "Listing created successfully",
            "listing": created
        }
    except ListingError as e:
        raise listing_error_to_http(e)

@router.patch("/{listing_id}")
async def update_listing(
    listing_id: UUID,
    update: UpdateListingRequest,
    user_id: UUID = Security(get_current_user)
):
    """Edit a listing. Only the seller may edit it."""
    try:
        listing = await manager.update_listing(
            listing_id,
            user_id,
            update.model_dump(exclude_unset=True)
        )
        return {"listing": listing}
    except ListingError as e:
        raise listing_error_to_http(e)

@router.post("/{listing_id}/ai-score")
async def score_listing(
    listing_id: UUID,
    request: AuthenticityScoreRequest,
    user_id: UUID = Security(get_current_user)
):
    """Record an authenticity score for a listing. Only the seller may score it."""
    try:
        if request.authenticity_score is not None:
            listing = await manager.set_authenticity_score(
                listing_id,
                user_id,
                request.authenticity_score,
                request.is_verified
            )
        else:
            listing = await manager.score_listing(
                listing_id,
                user_id,
                photo_count=request.photo_count,
                has_video=request.has_video,
                certificate_count=request.certificate_count,
                is_verified=request.is_verified
            )
    except ListingError as e:
        raise listing_error_to_http(e)

    return {
        "listing": listing,
        "band": score_band(float(listing['authenticity_score']))
    }

# Export the router
__all__ = ['router']
