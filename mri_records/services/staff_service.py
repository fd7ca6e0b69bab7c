"""Staff user service."""

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from mri_records.core.permissions import Role
from mri_records.models.patients import patients
from mri_records.models.queries import user_queries
from mri_records.models.users import users
from mri_records.schemas.users import StaffActivity, StaffOption, UserResponse

logger = structlog.get_logger(__name__)

# Roles that record or read patient data and appear in staff pickers
STAFF_LIST_ROLES = (Role.MEDICAL_STAFF.value, Role.ADMIN.value, Role.DOCTOR.value)


class StaffService:
    """Service for staff accounts and their administration."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_user(self, user_id: int) -> dict[str, Any] | None:
        """Get a user row by id."""
        result = await self.db.execute(select(users).where(users.c.id == user_id))
        row = result.mappings().first()
        return dict(row) if row else None

    async def get_user_by_username(self, username: str) -> dict[str, Any] | None:
        """Get a user row by username."""
        result = await self.db.execute(select(users).where(users.c.username == username))
        row = result.mappings().first()
        return dict(row) if row else None

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        full_name: str,
        phone_number: str | None = None,
        role: Role = Role.MEDICAL_STAFF,
        is_verified: bool = False,
        can_download: bool = False,
    ) -> dict[str, Any]:
        """
        Create a staff account.

        Raises:
            ConflictException: If the username or email is already taken
        """
        existing = await self.db.execute(
            select(users.c.id).where(or_(users.c.username == username, users.c.email == email))
        )
        if existing.first():
            raise ConflictException("Username or email already exists")

        now = datetime.now(UTC)
        stmt = (
            insert(users)
            .values(
                username=username,
                email=email,
                password_hash=password_hash,
                full_name=full_name,
                phone_number=phone_number,
                role=role.value,
                is_verified=is_verified,
                can_download=can_download,
                created_at=now,
                updated_at=now,
            )
            .returning(users)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.mappings().one()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("Username or email already exists")

        logger.info("user_created", user_id=row["id"], role=role.value)
        return dict(row)

    async def update_last_login(self, user_id: int) -> None:
        """Stamp the user's last login time."""
        await self.db.execute(
            update(users).where(users.c.id == user_id).values(last_login_at=datetime.now(UTC))
        )
        await self.db.commit()

    async def list_staff_options(self) -> list[StaffOption]:
        """Staff who can record patients, sorted by name."""
        stmt = (
            select(users.c.id, users.c.full_name, users.c.username)
            .where(users.c.role.in_(STAFF_LIST_ROLES))
            .order_by(users.c.full_name.asc())
        )
        result = await self.db.execute(stmt)
        return [StaffOption.model_validate(dict(row)) for row in result.mappings().all()]

    async def list_medical_staff(self) -> list[UserResponse]:
        """All medical staff accounts, newest first."""
        stmt = (
            select(users)
            .where(users.c.role == Role.MEDICAL_STAFF.value)
            .order_by(users.c.created_at.desc(), users.c.id.desc())
        )
        result = await self.db.execute(stmt)
        return [UserResponse.model_validate(dict(row)) for row in result.mappings().all()]

    async def _get_target(self, user_id: int) -> dict[str, Any]:
        target = await self.get_user(user_id)
        if not target:
            raise NotFoundException("User not found")
        return target

    @staticmethod
    def _guard_target(target: dict[str, Any], admin_id: int, action: str) -> None:
        if target["role"] == Role.ADMIN.value:
            raise ForbiddenException(f"Cannot {action} an admin account")
        if target["id"] == admin_id:
            raise ForbiddenException(f"Cannot {action} your own account")

    async def _set_verified(self, user_id: int, verified: bool) -> UserResponse:
        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(is_verified=verified, updated_at=datetime.now(UTC))
            .returning(users)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().one()
        await self.db.commit()
        return UserResponse.model_validate(dict(row))

    async def verify_medical_staff(self, user_id: int, suspend: bool) -> UserResponse:
        """
        Verify (or un-verify) a pending medical staff account.

        Raises:
            NotFoundException: If the user does not exist
            BadRequestException: If the user is not medical staff or already in that state
        """
        target = await self._get_target(user_id)
        if target["role"] != Role.MEDICAL_STAFF.value:
            raise BadRequestException("Only medical staff accounts can be verified")

        verified = not suspend
        if target["is_verified"] == verified:
            state = "verified" if verified else "suspended"
            raise BadRequestException(f"Account is already {state}")

        user = await self._set_verified(user_id, verified)
        logger.info("staff_verification_changed", user_id=user_id, is_verified=verified)
        return user

    async def set_suspension(self, user_id: int, suspend: bool, admin_id: int) -> UserResponse:
        """
        Suspend or reinstate a staff account.

        Raises:
            NotFoundException: If the user does not exist
            ForbiddenException: If the target is an admin or the caller
        """
        target = await self._get_target(user_id)
        self._guard_target(target, admin_id, "suspend")

        user = await self._set_verified(user_id, not suspend)
        logger.info("staff_suspension_changed", user_id=user_id, suspended=suspend)
        return user

    async def set_download_permission(self, user_id: int, can_download: bool) -> UserResponse:
        """Grant or revoke the result download capability."""
        await self._get_target(user_id)

        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(can_download=can_download, updated_at=datetime.now(UTC))
            .returning(users)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().one()
        await self.db.commit()

        logger.info("download_permission_changed", user_id=user_id, can_download=can_download)
        return UserResponse.model_validate(dict(row))

    async def delete_staff(self, user_id: int, admin_id: int) -> None:
        """
        Delete a staff account.

        Raises:
            NotFoundException: If the user does not exist
            ForbiddenException: If the target is an admin or the caller
            ConflictException: If the user still owns patient, result or query records
        """
        target = await self._get_target(user_id)
        self._guard_target(target, admin_id, "delete")

        try:
            await self.db.execute(delete(users).where(users.c.id == user_id))
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(
                "Staff member has recorded data; reassign or remove it before deleting"
            )

        logger.info("staff_deleted", user_id=user_id, deleted_by=admin_id)

    async def staff_activity(self) -> list[StaffActivity]:
        """Patients logged and queries submitted per medical staff account."""
        patient_stats = (
            select(
                patients.c.recorded_by_staff_id.label("user_id"),
                func.count(patients.c.id).label("patients_logged"),
                func.max(patients.c.created_at).label("last_patient_logged_at"),
            )
            .group_by(patients.c.recorded_by_staff_id)
            .subquery()
        )
        query_stats = (
            select(
                user_queries.c.sender_id.label("user_id"),
                func.count(user_queries.c.id).label("queries_submitted"),
                func.max(user_queries.c.created_at).label("last_query_at"),
            )
            .group_by(user_queries.c.sender_id)
            .subquery()
        )

        stmt = (
            select(
                users.c.id,
                users.c.full_name,
                users.c.username,
                func.coalesce(patient_stats.c.patients_logged, 0).label("patients_logged"),
                func.coalesce(query_stats.c.queries_submitted, 0).label("queries_submitted"),
                patient_stats.c.last_patient_logged_at,
                query_stats.c.last_query_at,
            )
            .select_from(
                users.outerjoin(patient_stats, patient_stats.c.user_id == users.c.id).outerjoin(
                    query_stats, query_stats.c.user_id == users.c.id
                )
            )
            .where(users.c.role == Role.MEDICAL_STAFF.value)
            .order_by(users.c.full_name.asc())
        )
        result = await self.db.execute(stmt)
        return [StaffActivity.model_validate(dict(row)) for row in result.mappings().all()]
