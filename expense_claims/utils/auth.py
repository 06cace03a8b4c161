"""
Authentication Utilities
JWT identity tokens issued by the sign-in provider
Source: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/

The claims engine does not manage passwords. It only verifies the bearer
token and reads the auth user id from ``sub``.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from expense_claims.api.config import settings


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT access token.

    Used by the sign-in bridge and by tests; production tokens normally come
    from the identity provider sharing ``JWT_SECRET_KEY``.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[Any, Any] | None:
    """
    Decode and verify a JWT token.

    Returns:
        Token payload if valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
