"""
Auth utilities for the RecipeHub API.

Issues and verifies HS256 bearer tokens and hashes passwords with bcrypt.
The token carries identity only; plan and usage are re-read per request.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Header
import logging

from recipehub.core.config import settings
from recipehub.core.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


def _secret() -> str:
    if not settings.JWT_SECRET:
        raise UnauthenticatedError("Authentication is not configured")
    return settings.JWT_SECRET


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: str, email: str, now: Optional[datetime] = None) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "iat": issued,
        "exp": issued + timedelta(days=settings.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, _secret(), algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify a bearer token and return its user id.

    Raises:
        UnauthenticatedError: expired, malformed, or badly signed token
    """
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_signature": True, "verify_exp": True, "require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise UnauthenticatedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise UnauthenticatedError("Invalid token")
    return user_id


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """FastAPI dependency: user id from `Authorization: Bearer <token>`."""
    if not authorization:
        raise UnauthenticatedError("Access token required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError("Access token required")
    return decode_access_token(token.strip())
