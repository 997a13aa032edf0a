from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .repositories import Repository, get_repository
from .settings import get_settings

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Hash a plain password with bcrypt using the configured cost factor."""
    if not password:
        raise ValueError("Password cannot be empty")
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` matches the stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# PUBLIC_INTERFACE
def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed JWT whose subject is the user id."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta is not None else timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


# PUBLIC_INTERFACE
def decode_access_token(token: str) -> Optional[str]:
    """Return the user id carried by a valid token, or None if it is invalid or expired."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        logger.info("Rejected access token: %s", exc)
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


# PUBLIC_INTERFACE
async def get_current_user_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    repo: Repository = Depends(get_repository),
) -> Optional[str]:
    """
    FastAPI dependency resolving the session identity from a bearer token.

    Returns None when no token is sent, the token is invalid or expired, or
    the user no longer exists. Services treat None as unauthenticated.
    """
    if creds is None or not creds.credentials:
        return None
    user_id = decode_access_token(creds.credentials)
    if user_id is None:
        return None
    if repo.get_user(user_id) is None:
        logger.info("Token subject %s no longer exists", user_id)
        return None
    return user_id
