"""Authentication module using password login and JWT sessions.

This module provides:
1. Password verification against stored PBKDF2 hashes
2. Single active session per user, stored alongside the signed token
3. Dependencies for protecting routes
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from uuid import UUID

from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt

from config import settings_conf
from database import get_pool
from .passwords import hash_password, verify_password

# Configure logging
logger = logging.getLogger(__name__)

class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class InvalidCredentialsError(AuthError):
    """Raised when email and password do not match a user."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a session has expired."""
    pass

class AuthManager:
    """Manages logins and sessions."""

    def __init__(self, pool=None):
        """Initialize auth manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure database pool is available."""
        if not self.pool:
            self.pool = await get_pool()

    def _encode_token(self, user_id: UUID, expires_at: datetime) -> str:
        return jwt.encode(
            {
                'sub': str(user_id),
                'exp': int(expires_at.timestamp())
            },
            settings_conf['jwt_secret'],
            algorithm=settings_conf['jwt_algorithm']
        )

    def decode_token(self, token: str) -> UUID:
        """Decode a session token and return the user id it was issued to.

        Raises:
            SessionExpiredError: If the token's exp is in the past
            AuthError: If the token is malformed or badly signed
        """
        try:
            payload = jwt.decode(
                token,
                settings_conf['jwt_secret'],
                algorithms=[settings_conf['jwt_algorithm']]
            )
            return UUID(payload['sub'])
        except jwt.ExpiredSignatureError:
            raise SessionExpiredError("Session has expired")
        except jwt.JWTError as e:
            raise AuthError(f"Invalid token: {str(e)}")
        except (KeyError, ValueError):
            raise AuthError("Invalid token: bad subject")

    async def login(
        self,
        email: str,
        password: str,
        request: Optional[Request] = None
    ) -> Dict[str, Any]:
        """Verify credentials and create a session.

        Args:
            email: The user's email (case-insensitive)
            password: The plain-text password
            request: Optional request object for session metadata

        Returns:
            Dict containing:
                - token: Session token for future requests
                - expires_at: Session expiration timestamp
                - user_id: The authenticated user's id

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            user = await conn.fetchrow(
                'SELECT id, password_hash FROM users WHERE email = $1',
                email.strip().lower()
            )

            if not user or not verify_password(password, user['password_hash']):
                raise InvalidCredentialsError("Invalid email or password")

            expires_at = datetime.now(timezone.utc) + timedelta(
                days=settings_conf['session_expiry_days']
            )
            token = self._encode_token(user['id'], expires_at)

            async with conn.transaction():
                # Revoke any existing sessions for this user
                await conn.execute(
                    '''
                    UPDATE auth_sessions
                    SET revoked = true
                    WHERE user_id = $1 AND NOT revoked
                    ''',
                    user['id']
                )

                await conn.execute(
                    '''
                    INSERT INTO auth_sessions (
                        user_id, token, expires_at,
                        user_agent, ip_address
                    ) VALUES ($1, $2, $3, $4, $5)
                    ''',
                    user['id'],
                    token,
                    expires_at,
                    request.headers.get('user-agent') if request else None,
                    request.client.host if request and request.client else None
                )

        logger.info(f"User {user['id']} logged in")
        return {
            'token': token,
            'expires_at': expires_at.isoformat(),
            'user_id': user['id']
        }

    async def verify_session(
        self,
        token: str,
        request: Optional[Request] = None
    ) -> UUID:
        """Verify a session token.

        Args:
            token: The session token to verify
            request: Optional request object for updating session metadata

        Returns:
            The authenticated user id

        Raises:
            SessionExpiredError: If session has expired
            AuthError: For other verification errors
        """
        user_id = self.decode_token(token)

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            session = await conn.fetchrow(
                '''
                SELECT expires_at
                FROM auth_sessions
                WHERE user_id = $1 AND token = $2
                AND NOT revoked
                ''',
                user_id,
                token
            )

            if not session:
                raise AuthError("Session not found or revoked")

            if session['expires_at'] < datetime.now(timezone.utc):
                raise SessionExpiredError("Session has expired")

            if request:
                await conn.execute(
                    '''
                    UPDATE auth_sessions
                    SET last_used_at = now()
                    WHERE user_id = $1 AND token = $2
                    ''',
                    user_id,
                    token
                )

        return user_id

    async def validate_session(self, token: Optional[str]) -> Dict[str, Any]:
        """Report whether a token still maps to a live session and an existing user.

        Never raises for a bad token; the reason is reported instead.
        """
        if not token:
            return {'valid': False, 'reason': 'no_session'}

        try:
            user_id = await self.verify_session(token)
        except AuthError:
            return {'valid': False, 'reason': 'invalid_session'}

        async with self.pool.acquire() as conn:
            exists = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM users WHERE id = $1)',
                user_id
            )

        if not exists:
            return {'valid': False, 'reason': 'user_not_found'}
        return {'valid': True}

    async def logout(self, user_id: UUID):
        """Log out by revoking the active session.

        Args:
            user_id: User to log out
        """
        await self.ensure_pool()

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    '''
                    UPDATE auth_sessions
                    SET revoked = true
                    WHERE user_id = $1
                    AND NOT revoked
                    ''',
                    user_id
                )
        except Exception as e:
            logger.error(f"Error logging out: {e}")
            raise AuthError(f"Failed to log out: {str(e)}")

# Create global instance
manager = AuthManager()

# FastAPI security schemes
auth_scheme = HTTPBearer(
    auto_error=True,  # Return 401 automatically if token is missing
    description="JWT Bearer token required"
)
optional_auth_scheme = HTTPBearer(auto_error=False)

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)
) -> UUID:
    """FastAPI dependency for getting the authenticated user id.

    Args:
        request: The FastAPI request
        credentials: Bearer token credentials

    Returns:
        The authenticated user id

    Raises:
        HTTPException: If authentication fails
    """
    try:
        return await manager.verify_session(credentials.credentials, request)
    except SessionExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired"
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

async def get_optional_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_auth_scheme)
) -> Optional[str]:
    """FastAPI dependency returning the bearer token if one was sent."""
    return credentials.credentials if credentials else None

# Export public interface
__all__ = [
    'manager',
    'AuthManager',
    'get_current_user',
    'get_optional_token',
    'auth_scheme',
    'hash_password',
    'verify_password',
    'AuthError',
    'InvalidCredentialsError',
    'SessionExpiredError'
]
