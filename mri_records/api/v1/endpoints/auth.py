"""Authentication endpoints."""

from fastapi import APIRouter, status

from mri_records.dependencies import (
    CacheManagerDep,
    CurrentUser,
    DatabaseSession,
    RateLimiterDep,
)
from mri_records.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    Token,
    TokenRefresh,
)
from mri_records.schemas.users import UserResponse
from mri_records.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register staff account",
)
async def register(
    data: RegisterRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
    rate_limiter: RateLimiterDep,
) -> UserResponse:
    """
    Register a medical staff account.

    The account cannot sign in until an admin verifies it.
    """
    user = await AuthService(db, cache_manager, rate_limiter).register(data)
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Sign in with username and password",
)
async def login(
    data: LoginRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
    rate_limiter: RateLimiterDep,
) -> LoginResponse:
    """
    Exchange credentials for a token pair.

    Args:
        data: Username and password
        db: Database session
        cache_manager: Redis helper
        rate_limiter: Login throttle

    Returns:
        Access token, refresh token and the signed-in user
    """
    user, tokens = await AuthService(db, cache_manager, rate_limiter).login(
        data.username, data.password
    )
    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/refresh",
    response_model=Token,
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
    rate_limiter: RateLimiterDep,
) -> Token:
    """Issue a new token pair from a valid, unrevoked refresh token."""
    return await AuthService(db, cache_manager, rate_limiter).refresh(request.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout and revoke refresh token",
)
async def logout(
    request: TokenRefresh,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
    rate_limiter: RateLimiterDep,
) -> None:
    """Revoke the refresh token."""
    AuthService(db, cache_manager, rate_limiter).revoke_token(request.refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
)
async def me(current_user: CurrentUser) -> UserResponse:
    """Return the signed-in user."""
    return UserResponse.model_validate(current_user)
