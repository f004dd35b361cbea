"""
Authentication utilities - JWT token handling and the bearer-auth dependency.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..config import settings
from ..core.errors import UnauthorizedError
from ..models import TokenData

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

# Bearer token security; missing credentials are reported as 401 by the dependency
security = HTTPBearer(auto_error=False)


def create_token(data: dict, expires_delta: timedelta) -> str:
    """
    Create a signed JWT.

    Args:
        data: Claims to encode in the token
        expires_delta: Lifetime of the token

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(user_id: str, full_name: str, government_id: str) -> str:
    """Create a short-lived access token for a user."""
    return create_token(
        {"sub": user_id, "full_name": full_name, "government_id": government_id, "type": ACCESS_TOKEN},
        timedelta(minutes=settings.access_token_expire_minutes)
    )


def create_refresh_token(user_id: str, full_name: str, government_id: str) -> str:
    """Create a long-lived refresh token for a user."""
    return create_token(
        {"sub": user_id, "full_name": full_name, "government_id": government_id, "type": REFRESH_TOKEN},
        timedelta(days=settings.refresh_token_expire_days)
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Optional[TokenData]:
    """
    Decode and verify a JWT.

    Args:
        token: JWT token string
        expected_type: Required value of the ``type`` claim

    Returns:
        Optional[TokenData]: Token data if valid and of the expected type, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    user_id: Optional[str] = payload.get("sub")
    if user_id is None or payload.get("type") != expected_type:
        return None

    return TokenData(
        user_id=user_id,
        full_name=payload.get("full_name"),
        government_id=payload.get("government_id"),
        type=payload.get("type"),
    )


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    Dependency to get current user ID from the bearer access token.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedError("No token provided")

    token_data = decode_token(credentials.credentials, ACCESS_TOKEN)
    if token_data is None:
        raise UnauthorizedError("Invalid or expired access token")

    return token_data.user_id
