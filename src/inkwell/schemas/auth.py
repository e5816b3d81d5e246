"""Authentication request and response schemas."""

from pydantic import BaseModel, EmailStr, Field, field_validator

from .user import USERNAME_PATTERN, UserResponse, validate_password_strength


class RegisterRequest(BaseModel):
    """Account registration payload."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=20)
    password: str = Field(..., min_length=8, max_length=32)
    display_name: str | None = Field(None, max_length=50)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Restrict usernames to letters, numbers, underscores and hyphens."""
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username can only contain letters, numbers, underscores and hyphens")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class LoginRequest(BaseModel):
    """Credentials; ``identifier`` is an email address or a username."""

    identifier: str = Field(..., min_length=1, description="Email or username")
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)
    user_id: int | None = Field(None, description="Optional expected token subject")


class LogoutRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=32)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class TokenPair(BaseModel):
    """Access/refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenPair):
    """Token pair plus the sanitised account it was issued for."""

    user: UserResponse
