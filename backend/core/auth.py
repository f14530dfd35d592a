"""
Customer identity for punch card endpoints.

Sessions are issued by an external identity provider; this module only
verifies the provider's JWT access tokens and exposes the caller as a
FastAPI dependency.
"""

from datetime import datetime, timedelta
from typing import Optional
import logging
import secrets

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel

from .config import get_settings
from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """Token payload data."""

    subject: str
    email: str
    name: Optional[str] = None
    token_id: Optional[str] = None


class CurrentUser(BaseModel):
    """Authenticated customer or business owner."""

    id: str
    email: str
    name: Optional[str] = None


def create_access_token(
    subject: str,
    email: str,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token the way the identity provider does."""
    settings = get_settings()
    now = datetime.utcnow()
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.jwt_access_token_expire_minutes)

    to_encode = {
        "sub": subject,
        "email": email,
        "exp": expire,
        "iat": now,
        "type": "access",
        "jti": secrets.token_urlsafe(16),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    if name:
        to_encode["name"] = name

    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> Optional[TokenData]:
    """
    Verify and decode an access token.

    Args:
        token: JWT token to verify

    Returns:
        TokenData if valid, None otherwise
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options={"require_exp": True, "require_sub": True},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Token has expired")
        return None
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    if payload.get("type") != "access":
        logger.warning(f"Token type mismatch: got {payload.get('type')}")
        return None

    subject = payload.get("sub")
    email = payload.get("email")
    if not subject or not email:
        return None

    return TokenData(
        subject=str(subject),
        email=email,
        name=payload.get("name"),
        token_id=payload.get("jti"),
    )


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """Get current user if authenticated, None otherwise."""
    if not credentials:
        return None

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        return None

    return CurrentUser(id=token_data.subject, email=token_data.email, name=token_data.name)


async def get_current_user(
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
) -> CurrentUser:
    """Resolve the current authenticated user or fail with 401."""
    if user is None:
        raise AuthenticationError()
    return user
