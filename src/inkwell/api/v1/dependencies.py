"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from inkwell.core.errors import ForbiddenError, UnauthorizedError
from inkwell.core.security import decode_access_token
from inkwell.core.settings import settings
from inkwell.db.session import get_db
from inkwell.models import User
from inkwell.services.cache import CacheService, get_cache_service

# Missing credentials are reported through UnauthorizedError so they share the
# error envelope.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CacheDep = Annotated[CacheService, Depends(get_cache_service)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _user_from_token(token: str, db: Session) -> User:
    try:
        payload = decode_access_token(token)
        user_id = int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError) as err:
        raise UnauthorizedError("Could not validate credentials") from err

    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


def get_current_user(request: Request, credentials: CredentialsDep, db: SessionDep) -> User:
    """Get the current authenticated user from the bearer access token.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired, or the
            user no longer exists.
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    user = _user_from_token(credentials.credentials, db)
    request.state.user_id = user.id
    return user


def get_optional_user(request: Request, credentials: CredentialsDep, db: SessionDep) -> User | None:
    """Like :func:`get_current_user`, but anonymous or bad tokens yield ``None``."""
    if credentials is None:
        return None
    try:
        user = _user_from_token(credentials.credentials, db)
    except UnauthorizedError:
        return None
    request.state.user_id = user.id
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]


def require_admin(user: CurrentUserDep) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


AdminUserDep = Annotated[User, Depends(require_admin)]


class Pagination:
    """``page``/``limit`` query parameters shared by list endpoints."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(20, ge=1, le=settings.max_page_size, description="Items per page"),
    ) -> None:
        self.page = page
        self.limit = limit


PaginationDep = Annotated[Pagination, Depends()]
