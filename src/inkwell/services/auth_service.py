"""Credential checks and the access/refresh token lifecycle.

Access tokens are short-lived and stateless. Refresh tokens are stored one row
per token; using one revokes it (rotation) and issues a new pair, so each
refresh token can be exchanged exactly once.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from jose import JWTError
from sqlalchemy import update
from sqlalchemy.orm import Session

from inkwell.core import security
from inkwell.core.errors import BadRequestError, UnauthorizedError
from inkwell.core.settings import settings
from inkwell.db.time import utcnow
from inkwell.models import RefreshToken, User
from inkwell.schemas.auth import AuthResponse, RegisterRequest
from inkwell.schemas.user import UserResponse
from inkwell.services import user_service

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset link has been sent"


def sanitize_user(user: User) -> UserResponse:
    """Return the client-facing view of ``user`` without credential material."""
    return UserResponse.model_validate(user)


class AuthService:
    """Service handling registration, login and token rotation."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def validate_user(self, identifier: str, password: str) -> User:
        """Return the user matching ``identifier`` and ``password``.

        Unknown accounts and wrong passwords raise the same error.
        """
        user = user_service.find_by_identifier(self.db, identifier)
        if user is None or not security.verify_password(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return user

    def register(self, data: RegisterRequest) -> AuthResponse:
        user = user_service.create_user(
            self.db,
            email=data.email,
            username=data.username,
            password=data.password,
            display_name=data.display_name,
        )
        logger.info("Registered user %s (%s)", user.id, user.username)
        return self._issue_tokens(user)

    def login(self, identifier: str, password: str) -> AuthResponse:
        user = self.validate_user(identifier, password)
        user.last_login_at = utcnow()
        logger.info("User %s logged in", user.id)
        return self._issue_tokens(user)

    def refresh_tokens(self, refresh_token: str, user_id: int | None = None) -> AuthResponse:
        """Exchange a refresh token for a new pair, revoking the presented one."""
        try:
            payload = security.decode_refresh_token(refresh_token)
            subject = int(payload["sub"])
        except (JWTError, KeyError, TypeError, ValueError) as err:
            raise UnauthorizedError("Invalid or expired refresh token") from err

        if user_id is not None and user_id != subject:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        now = utcnow()
        result = self.db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.id == payload["jti"],
                RefreshToken.user_id == subject,
                RefreshToken.token_hash == security.hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > now,
            )
            .values(revoked=True, revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Rejected reuse of refresh token %s for user %s", payload["jti"], subject)
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = self.db.get(User, subject)
        if user is None:
            raise UnauthorizedError("User not found")
        return self._issue_tokens(user)

    def logout(self, user_id: int, refresh_token: str) -> None:
        """Revoke one refresh token belonging to ``user_id``.

        Unknown or foreign tokens are ignored so logout is idempotent.
        """
        self.db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.token_hash == security.hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def revoke_all(self, user_id: int) -> int:
        """Revoke every active refresh token of ``user_id``; returns the count."""
        result = self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def logout_all(self, user_id: int) -> int:
        revoked = self.revoke_all(user_id)
        self.db.commit()
        logger.info("User %s logged out of %s sessions", user_id, revoked)
        return revoked

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not security.verify_password(current_password, user.password_hash):
            raise UnauthorizedError("Current password is incorrect")
        self._set_password(user, new_password)
        revoked = self.revoke_all(user.id)
        self.db.commit()
        logger.info("User %s changed password; revoked %s refresh tokens", user.id, revoked)

    def forgot_password(self, email: str) -> tuple[str, str | None]:
        """Start a password reset.

        Returns:
            ``(message, token)``. The message is identical whether or not the
            account exists; ``token`` is ``None`` for unknown emails.
        """
        user = self.db.query(User).filter(User.email == email.strip().lower()).first()
        if user is None:
            return RESET_REQUESTED_MESSAGE, None

        token = secrets.token_urlsafe(32)
        user.password_reset_token_hash = security.hash_token(token)
        user.password_reset_expires = utcnow() + timedelta(
            minutes=settings.password_reset_expire_minutes
        )
        self.db.commit()
        # No mail transport is configured; the link is only logged.
        logger.info(
            "Password reset requested for user %s: %s/reset-password?token=%s",
            user.id,
            settings.frontend_url,
            token,
        )
        return RESET_REQUESTED_MESSAGE, token

    def reset_password(self, token: str, new_password: str) -> None:
        user = (
            self.db.query(User)
            .filter(
                User.password_reset_token_hash == security.hash_token(token),
                User.password_reset_expires > utcnow(),
            )
            .first()
        )
        if user is None:
            raise BadRequestError("Invalid or expired reset token")

        self._set_password(user, new_password)
        user.password_reset_token_hash = None
        user.password_reset_expires = None
        self.revoke_all(user.id)
        self.db.commit()
        logger.info("Password reset completed for user %s", user.id)

    def _set_password(self, user: User, password: str) -> None:
        try:
            user.password_hash = security.hash_password(password)
        except ValueError as err:
            raise BadRequestError(str(err)) from err

    def _issue_tokens(self, user: User) -> AuthResponse:
        access_token = security.create_access_token(
            user.id,
            {"email": user.email, "username": user.username, "role": user.role},
        )
        refresh_token, token_id, expires_at = security.create_refresh_token(user.id)
        self.db.add(
            RefreshToken(
                id=token_id,
                user_id=user.id,
                token_hash=security.hash_token(refresh_token),
                expires_at=expires_at,
            )
        )
        self.db.commit()
        self.db.refresh(user)
        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            user=sanitize_user(user),
        )
