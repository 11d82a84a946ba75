"""REST API module for the marketplace.

This module provides HTTP endpoints for:
- Signing up, logging in and session management
- Browsing, creating and editing listings
- Authenticity scoring of listings
- Placing orders and viewing purchases and sales
- Buyer/seller conversations
- Favorites
- Public seller profiles and reviews
- System health monitoring
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import init_db, close as db_close

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Initializing API...")
    await init_db()

    yield

    logger.info("Shutting down API...")
    await db_close()

# Create FastAPI app
app = FastAPI(
    title="Vinyl Marketplace API",
    description="REST API for buying and selling records, CDs, tapes, merch and equipment",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def format_validation_error(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into one readable message."""
    messages = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part != 'body')
        messages.append(f"{location}: {error.get('msg')}" if location else error.get('msg'))
    return '; '.join(messages) or "Invalid request"

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, 'headers', None)
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": format_validation_error(exc)}
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )

@app.get("/")
async def root():
    return {
        "name": "Vinyl Marketplace API",
        "version": "1.0.0",
        "status": "running"
    }

# Import and include all routers
from .auth import router as auth_router
from .listings import router as listings_router
from .orders import router as orders_router
from .conversations import router as conversations_router
from .favorites import router as favorites_router
from .users import router as users_router
from .system import router as system_router

# Include all routers
app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(orders_router)
app.include_router(conversations_router)
app.include_router(favorites_router)
app.include_router(users_router)
app.include_router(system_router)
