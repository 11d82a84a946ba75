"""Favorites API endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status, Security
from pydantic import BaseModel

from auth import get_current_user
from favorites import FavoriteManager, DuplicateFavoriteError
from listings import ListingNotFoundError

router = APIRouter(
    prefix="/favorites",
    tags=["Favorites"]
)

manager = FavoriteManager()

class FavoriteRequest(BaseModel):
    """Request model for adding or toggling a favorite."""
    listing_id: UUID

@router.get("/")
async def get_favorites(user_id: UUID = Security(get_current_user)):
    """Get the current user's favorites, newest first."""
    return await manager.get_favorites(user_id)

@router.post("/", status_code=status.HTTP_201_CREATED)
async def add_favorite(
    request: FavoriteRequest,
    user_id: UUID = Security(get_current_user)
):
    """Add a listing to favorites."""
    try:
        return await manager.add_favorite(user_id, request.listing_id)
    except ListingNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateFavoriteError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.post("/toggle")
async def toggle_favorite(
    request: FavoriteRequest,
    user_id: UUID = Security(get_current_user)
):
    """Add the listing if it isn't a favorite, remove it if it is."""
    try:
        return await manager.toggle_favorite(user_id, request.listing_id)
    except ListingNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.get("/{listing_id}")
async def is_favorited(listing_id: UUID, user_id: UUID = Security(get_current_user)):
    """Check whether a listing is one of the current user's favorites."""
    return {"favorited": await manager.is_favorited(user_id, listing_id)}

@router.delete("/{listing_id}")
async def remove_favorite(listing_id: UUID, user_id: UUID = Security(get_current_user)):
    """Remove a listing from favorites. Removing a missing favorite succeeds."""
    removed = await manager.remove_favorite(user_id, listing_id)
    return {"success": True, "removed": removed}

# Export the router
__all__ = ['router']
