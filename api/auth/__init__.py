"""Authentication API endpoints."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, status, Security, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from auth import (
    manager, get_current_user, get_optional_token,
    AuthError, InvalidCredentialsError
)
from users import UserManager, DuplicateEmailError, InvalidUserError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

user_manager = UserManager()

class SignupRequest(BaseModel):
    """Request model for creating an account."""
    name: str
    email: str
    password: str

class LoginRequest(BaseModel):
    """Request model for logging in."""
    email: str
    password: str

class LoginResponse(BaseModel):
    """Response model for login."""
    token: str
    expires_at: str
    user_id: UUID

@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest):
    """Create a new account."""
    try:
        return await user_manager.create_user(request.name, request.email, request.password)
    except InvalidUserError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except DuplicateEmailError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, fastapi_request: Request):
    """Check email and password and create a session."""
    try:
        return await manager.login(request.email, request.password, fastapi_request)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.post("/logout")
async def logout(user_id: UUID = Security(get_current_user)):
    """Log out the current user by revoking their session."""
    try:
        await manager.logout(user_id)
        return {"success": True}
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("/verify")
async def verify_token(user_id: UUID = Security(get_current_user)):
    """Verify the current session token."""
    return {
        "valid": True,
        "user_id": user_id
    }

@router.get("/validate-session")
async def validate_session(token: Optional[str] = Depends(get_optional_token)):
    """Report whether the caller's session is still usable. Bad tokens are not an error."""
    try:
        return await manager.validate_session(token)
    except Exception as e:
        logger.error(f"Session validation error: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"valid": False, "reason": "error"}
        )

# Export the router
__all__ = ['router']
