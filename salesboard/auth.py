"""Identity tokens, password hashing and caller resolution."""

import os
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from fastapi import Depends, Request
from passlib.hash import bcrypt

from salesboard.dependencies import get_storage
from salesboard.errors import Forbidden, Unauthenticated
from salesboard.logging_config import get_logger
from salesboard.models import ROLE_ADMIN, User
from salesboard.storage import Storage

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# JWT Configuration
# ---------------------------------------------------------------------------

JWT_SECRET = os.getenv("JWT_SECRET_KEY", "")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET_KEY environment variable is required")
JWT_ALGORITHM = "HS256"
JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))


def create_access_token(user_id: str, expires_in: timedelta | None = None) -> str:
    """Create a signed access token for a dashboard user."""
    lifetime = expires_in or timedelta(minutes=JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": "access",
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decode and validate an access token. Raises Unauthenticated on failure."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")
    if payload.get("type") != "access":
        raise Unauthenticated("Invalid token type")
    return payload


def token_subject(token: str | None) -> str | None:
    """Best-effort user id from a token, without raising; used for rate-limit keys."""
    if not token:
        return None
    try:
        return decode_access_token(token).get("sub")
    except Unauthenticated:
        return None


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Caller resolution (shared by HTTP and WebSocket transports)
# ---------------------------------------------------------------------------


async def resolve_caller(storage: Storage, token: str | None) -> User:
    """Verify ``token`` and load the user it names.

    Raises Unauthenticated when the token is absent, malformed, expired, or
    names a user that no longer exists.
    """
    if not token:
        raise Unauthenticated("Missing token")

    payload = decode_access_token(token)
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise Unauthenticated("Invalid token payload")

    user = await storage.get_user(user_id)
    if user is None:
        raise Unauthenticated("Unknown user")
    return user


def require_role(user: User, *roles: str) -> User:
    if user.role not in roles:
        raise Forbidden(f"This action requires one of the roles: {', '.join(roles)}")
    return user


def bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.removeprefix("Bearer ").strip() or None


# ---------------------------------------------------------------------------
# FastAPI Auth Dependencies
# ---------------------------------------------------------------------------


async def get_current_user(
    request: Request,
    storage: Storage = Depends(get_storage),
) -> User:
    """FastAPI dependency: resolve the Bearer token to a User or raise 401."""
    return await resolve_caller(storage, bearer_token(request))


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    return require_role(user, ROLE_ADMIN)

