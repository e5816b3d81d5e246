# src/inkwell/api/v1/endpoints/auth.py
"""Authentication endpoints for the Inkwell API."""

from fastapi import APIRouter, Request, status

from inkwell.api.v1.dependencies import CurrentUserDep, SessionDep
from inkwell.core.rate_limit import (
    LOGIN_LIMIT,
    PASSWORD_RESET_LIMIT,
    PASSWORD_RESET_SCOPE,
    REGISTER_LIMIT,
    limiter,
)
from inkwell.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from inkwell.schemas.common import MessageResponse
from inkwell.schemas.user import UserResponse
from inkwell.services.auth_service import AuthService, sanitize_user

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(request: Request, payload: RegisterRequest, db: SessionDep) -> AuthResponse:
    """Create an account and sign it in."""
    return AuthService(db).register(payload)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(request: Request, payload: LoginRequest, db: SessionDep) -> AuthResponse:
    """Exchange an email or username and password for a token pair."""
    return AuthService(db).login(payload.identifier, payload.password)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(payload: RefreshRequest, db: SessionDep) -> AuthResponse:
    """Rotate a refresh token; the presented token cannot be used again."""
    return AuthService(db).refresh_tokens(payload.refresh_token, payload.user_id)


@router.post("/logout", response_model=MessageResponse)
async def logout(payload: LogoutRequest, current_user: CurrentUserDep, db: SessionDep) -> MessageResponse:
    AuthService(db).logout(current_user.id, payload.refresh_token)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(current_user: CurrentUserDep, db: SessionDep) -> MessageResponse:
    """Revoke every refresh token of the caller."""
    AuthService(db).logout_all(current_user.id)
    return MessageResponse(message="Logged out from all devices")


@router.get("/me", response_model=UserResponse)
async def me(current_user: CurrentUserDep) -> UserResponse:
    return sanitize_user(current_user)


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.shared_limit(PASSWORD_RESET_LIMIT, scope=PASSWORD_RESET_SCOPE)
async def forgot_password(
    request: Request, payload: ForgotPasswordRequest, db: SessionDep
) -> MessageResponse:
    message, _ = AuthService(db).forgot_password(payload.email)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.shared_limit(PASSWORD_RESET_LIMIT, scope=PASSWORD_RESET_SCOPE)
async def reset_password(
    request: Request, payload: ResetPasswordRequest, db: SessionDep
) -> MessageResponse:
    AuthService(db).reset_password(payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset successfully")
