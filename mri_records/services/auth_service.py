"""Authentication service for password login and JWT handling."""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.config import settings
from mri_records.core.exceptions import (
    ForbiddenException,
    RateLimitException,
    UnauthorizedException,
)
from mri_records.core.permissions import Role
from mri_records.core.redis_client import CacheManager, RateLimiter
from mri_records.core.security import (
    build_token_claims,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from mri_records.schemas.auth import RegisterRequest, Token
from mri_records.services.staff_service import StaffService

logger = structlog.get_logger(__name__)

REVOKED_TOKEN_PREFIX = "blacklist:"
LOGIN_ATTEMPT_PREFIX = "login_attempts:"


class AuthService:
    """Handles registration, login, refresh and logout."""

    def __init__(self, db: AsyncSession, cache_manager: CacheManager, rate_limiter: RateLimiter):
        """Initialize auth service with its collaborators."""
        self.db = db
        self.cache = cache_manager
        self.rate_limiter = rate_limiter
        self.staff = StaffService(db)

    async def register(self, data: RegisterRequest) -> dict[str, Any]:
        """
        Register a medical staff account awaiting admin verification.

        Raises:
            ConflictException: If the username or email is already taken
        """
        return await self.staff.create_user(
            username=data.username.strip(),
            email=str(data.email),
            password_hash=get_password_hash(data.password),
            full_name=data.full_name.strip(),
            phone_number=data.phone_number,
            role=Role.MEDICAL_STAFF,
        )

    async def login(self, username: str, password: str) -> tuple[dict[str, Any], Token]:
        """
        Check credentials and issue a token pair.

        Args:
            username: Account username
            password: Plain text password

        Returns:
            Tuple of (user row, token pair)

        Raises:
            RateLimitException: If too many attempts were made for this username
            UnauthorizedException: If the credentials are wrong
            ForbiddenException: If a medical staff account is not verified
        """
        attempt_key = f"{LOGIN_ATTEMPT_PREFIX}{username.lower()}"
        if not self.rate_limiter.check_rate_limit(
            attempt_key, limit=settings.login_rate_limit_per_minute, window=60
        ):
            logger.warning("login_rate_limited", username=username)
            raise RateLimitException("Too many login attempts, try again in a minute")

        user = await self.staff.get_user_by_username(username)
        if not user or not verify_password(password, user["password_hash"]):
            logger.info("login_failed", username=username)
            raise UnauthorizedException("Invalid username or password")

        if user["role"] == Role.MEDICAL_STAFF.value and not user["is_verified"]:
            raise ForbiddenException("Account is pending verification or suspended")

        self.rate_limiter.reset(attempt_key)
        await self.staff.update_last_login(user["id"])
        logger.info("login_succeeded", user_id=user["id"], role=user["role"])

        return user, self.create_tokens(user)

    def create_tokens(self, user: dict[str, Any]) -> Token:
        """Create an access and refresh token pair for a user row."""
        claims = build_token_claims(user)
        return Token(
            access_token=create_access_token(claims),
            refresh_token=create_refresh_token({"sub": claims["sub"]}),
        )

    async def refresh(self, refresh_token: str) -> Token:
        """
        Exchange a refresh token for a new pair.

        Claims are rebuilt from the current user row so role or download
        permission changes take effect.

        Raises:
            UnauthorizedException: If the token is invalid, revoked or its user is gone
        """
        payload = decode_refresh_token(refresh_token)
        if payload is None or payload.get("sub") is None:
            raise UnauthorizedException("Invalid refresh token")

        if self.cache.exists(f"{REVOKED_TOKEN_PREFIX}{refresh_token}"):
            raise UnauthorizedException("Token has been revoked")

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise UnauthorizedException("Invalid refresh token")

        user = await self.staff.get_user(user_id)
        if not user:
            raise UnauthorizedException("User not found")

        return self.create_tokens(user)

    def revoke_token(self, token: str) -> None:
        """Add a refresh token to the revocation list until it would expire."""
        ttl = settings.refresh_token_expire_days * 86400
        self.cache.set(f"{REVOKED_TOKEN_PREFIX}{token}", "1", ttl=ttl)
