"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import redis
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.exceptions import ForbiddenException, UnauthorizedException
from mri_records.core.permissions import Operation, Role, is_allowed
from mri_records.core.realtime import ConnectionRegistry, get_connection_registry
from mri_records.core.redis_client import CacheManager, RateLimiter, get_redis_client
from mri_records.core.security import decode_access_token
from mri_records.core.storage import BlobStorage, get_blob_storage
from mri_records.database import get_db
from mri_records.services.staff_service import StaffService

# Security
security = HTTPBearer(auto_error=False)


def get_token_user_id(token: str) -> int:
    """
    Validate an access token and return the user id it was issued for.

    Args:
        token: Encoded access token

    Returns:
        User ID from the ``sub`` claim

    Raises:
        UnauthorizedException: If the token is invalid, expired or malformed
    """
    payload = decode_access_token(token)
    if payload is None:
        raise UnauthorizedException("Could not validate credentials")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedException("Invalid token subject")


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> int:
    """Extract and validate the user ID from the bearer token."""
    if credentials is None:
        raise UnauthorizedException("Not authenticated")
    return get_token_user_id(credentials.credentials)


async def load_active_user(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """
    Load the caller's user row and check the account may act.

    Raises:
        UnauthorizedException: If the user no longer exists
        ForbiddenException: If a medical staff account is unverified or suspended
    """
    user = await StaffService(db).get_user(user_id)

    if not user:
        raise UnauthorizedException("User not found")

    if user["role"] == Role.MEDICAL_STAFF.value and not user["is_verified"]:
        raise ForbiddenException("Account is pending verification or suspended")

    return user


async def get_current_user(
    user_id: Annotated[int, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, Any]:
    """Resolve the authenticated caller from the database."""
    return await load_active_user(db, user_id)


def require_permission(
    operation: Operation,
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """
    Build a dependency that admits callers whose role may perform ``operation``.

    Args:
        operation: Operation looked up in the policy table

    Returns:
        Dependency yielding the current user
    """

    async def checker(
        current_user: Annotated[dict[str, Any], Depends(get_current_user)],
    ) -> dict[str, Any]:
        if not is_allowed(current_user["role"], operation):
            raise ForbiddenException(
                f"Role '{current_user['role']}' may not perform {operation.value}"
            )
        return current_user

    return checker


def get_cache_manager(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> CacheManager:
    """Cache manager over the shared Redis client."""
    return CacheManager(redis_client)


def get_rate_limiter(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> RateLimiter:
    """Rate limiter over the shared Redis client."""
    return RateLimiter(redis_client)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
BlobStorageDep = Annotated[BlobStorage, Depends(get_blob_storage)]
ConnectionRegistryDep = Annotated[ConnectionRegistry, Depends(get_connection_registry)]
