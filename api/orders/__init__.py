"""Order API endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status, Security
from pydantic import BaseModel

from auth import get_current_user
from orders import (
    OrderManager, OrderError, ListingNotFoundError, ListingAlreadySoldError,
    InvalidOrderError, DuplicateOrderNumberError, OrderNotFoundError
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)

manager = OrderManager()

class CreateOrderRequest(BaseModel):
    """Request model for placing an order."""
    listing_id: UUID
    order_number: str

def order_error_to_http(e: OrderError) -> HTTPException:
    """Map order errors to HTTP errors."""
    if isinstance(e, (ListingNotFoundError, OrderNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (ListingAlreadySoldError, DuplicateOrderNumberError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, InvalidOrderError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.error(f"Order operation failed: {e}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

@router.get("/")
async def get_my_orders(user_id: UUID = Security(get_current_user)):
    """Get the current user's purchases, newest first."""
    return await manager.get_orders_for_buyer(user_id)

@router.get("/sales")
async def get_my_sales(user_id: UUID = Security(get_current_user)):
    """Get orders placed on the current user's listings, newest first."""
    return await manager.get_sales_for_seller(user_id)

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_order(
    order: CreateOrderRequest,
    user_id: UUID = Security(get_current_user)
):
    """Buy a listing. The listing is marked sold with the order."""
    try:
        return await manager.create_order(user_id, order.listing_id, order.order_number)
    except OrderError as e:
        raise order_error_to_http(e)

@router.get("/{order_id}")
async def get_order(order_id: UUID, user_id: UUID = Security(get_current_user)):
    """Get one of the current user's orders, as buyer or seller."""
    try:
        return await manager.get_order(order_id, user_id)
    except OrderError as e:
        raise order_error_to_http(e)

# Export the router
__all__ = ['router']
