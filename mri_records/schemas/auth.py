"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field

from mri_records.schemas.users import UserResponse


class Token(BaseModel):
    """JWT token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class LoginRequest(BaseModel):
    """Username and password sign-in."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Staff self-registration; accounts start unverified."""

    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    phone_number: str | None = Field(None, max_length=30)


class LoginResponse(Token):
    """Login response with tokens and user info."""

    user: UserResponse
