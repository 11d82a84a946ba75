"""User profile and review API endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status, Security
from pydantic import BaseModel

from auth import get_current_user
from listings import ListingNotFoundError
from reviews import (
    ReviewManager, InvalidReviewError, ReviewNotAllowedError,
    DuplicateReviewError, SellerNotFoundError
)
from users import UserManager, UserNotFoundError

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)

user_manager = UserManager()
review_manager = ReviewManager()

class CreateReviewRequest(BaseModel):
    """Request model for reviewing a seller."""
    listing_id: UUID
    rating: int
    comment: Optional[str] = None

@router.get("/me")
async def get_me(user_id: UUID = Security(get_current_user)):
    """Get the current user's account details."""
    try:
        return await user_manager.get_user(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.get("/{user_id}")
async def get_profile(user_id: UUID):
    """Get a user's public profile and their available listings."""
    try:
        return await user_manager.get_public_profile(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.get("/{user_id}/reviews")
async def get_reviews(user_id: UUID, limit: Optional[int] = Query(None)):
    """Get a seller's reviews and rating statistics."""
    try:
        return await review_manager.get_seller_reviews(user_id, limit=limit)
    except SellerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.post("/{user_id}/reviews", status_code=status.HTTP_201_CREATED)
async def create_review(
    user_id: UUID,
    review: CreateReviewRequest,
    reviewer_id: UUID = Security(get_current_user)
):
    """Review a seller for a listing bought from them."""
    try:
        return await review_manager.create_review(
            reviewer_id,
            user_id,
            review.listing_id,
            review.rating,
            review.comment
        )
    except InvalidReviewError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ListingNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReviewNotAllowedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except DuplicateReviewError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

# Export the router
__all__ = ['router']
