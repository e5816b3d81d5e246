"""Password hashing and JWT helpers."""
from __future__ import annotations

import hashlib
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from inkwell.core.settings import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt only considers the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password`` using the configured work factor."""
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValueError("Password must not exceed 72 bytes")
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` matches the stored bcrypt hash."""
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def hash_token(token: str) -> str:
    """Return a SHA-256 hex digest used to store opaque tokens at rest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_access_token(subject: int | str, extra_claims: dict[str, Any] | None = None) -> str:
    """Create a short-lived JWT access token signed with ``JWT_SECRET``."""
    to_encode: dict[str, Any] = {"sub": str(subject), "type": ACCESS_TOKEN_TYPE}
    if extra_claims:
        to_encode.update(extra_claims)
    now = datetime.now(UTC)
    to_encode["iat"] = now
    to_encode["exp"] = now + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def create_refresh_token(subject: int | str) -> tuple[str, str, datetime]:
    """Create a refresh token signed with ``JWT_REFRESH_SECRET``.

    Returns:
        Tuple of ``(token, token_id, expires_at)``. The token id is embedded as
        the ``jti`` claim and doubles as the primary key of the stored row.
    """
    token_id = str(uuid.uuid4())
    now = datetime.now(UTC)
    expires_at = now + timedelta(days=settings.refresh_token_expire_days)
    to_encode = {
        "sub": str(subject),
        "jti": token_id,
        "type": REFRESH_TOKEN_TYPE,
        "iat": now,
        "exp": expires_at,
    }
    token: str = jwt.encode(
        to_encode,
        settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
    )
    return token, token_id, expires_at


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If the signature, expiry or token type is invalid.
    """
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
    )
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise JWTError("Unexpected token type")
    return payload


def decode_refresh_token(token: str) -> dict[str, Any]:
    """Decode and validate a refresh token.

    Raises:
        JWTError: If the signature, expiry or token type is invalid.
    """
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.jwt_refresh_secret,
        algorithms=[settings.jwt_algorithm],
    )
    if payload.get("type") != REFRESH_TOKEN_TYPE or not payload.get("jti"):
        raise JWTError("Unexpected token type")
    return payload
