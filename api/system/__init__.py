"""System health endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from config import settings_conf
from database import check_connection

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    database_status: str
    poll_interval_seconds: int
    checked_at: datetime

@router.get("/health", response_model=SystemHealth)
async def get_system_health():
    """Report database connectivity and the message polling interval clients should use."""
    database_ok = await check_connection()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database_status": "connected" if database_ok else "disconnected",
        "poll_interval_seconds": settings_conf['message_poll_interval_seconds'],
        "checked_at": datetime.now(timezone.utc)
    }

# Export the router
__all__ = ['router']
