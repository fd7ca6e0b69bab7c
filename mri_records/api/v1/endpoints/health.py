"""Liveness and dependency probes for load balancers and operators."""

from fastapi import APIRouter
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from mri_records.config import settings
from mri_records.core.redis_client import check_redis_connection
from mri_records.database import check_database_connection
from mri_records.dependencies import BlobStorageDep

router = APIRouter()

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"
DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Process is up; no dependency is contacted."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Process status plus one entry per backing service."""

    database: str
    redis: str
    storage: str


def _state(ok: bool) -> str:
    return HEALTHY if ok else UNHEALTHY


@router.get("/health", response_model=HealthResponse, summary="Liveness")
async def health_check() -> HealthResponse:
    return HealthResponse(
        status=HEALTHY,
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get("/health/detailed", response_model=DetailedHealthResponse, summary="Dependencies")
async def detailed_health_check(storage: BlobStorageDep) -> DetailedHealthResponse:
    """
    Probe PostgreSQL, Redis and the result bucket.

    Either the database or Redis being down reports ``degraded``. The
    bucket is reported but does not change the overall status.
    """
    database_ok = await check_database_connection()
    redis_ok = await check_redis_connection()
    storage_ok = await run_in_threadpool(storage.check_connection)

    return DetailedHealthResponse(
        status=HEALTHY if database_ok and redis_ok else DEGRADED,
        version=settings.app_version,
        environment=settings.environment,
        database=_state(database_ok),
        redis=_state(redis_ok),
        storage=_state(storage_ok),
    )


@router.get("/ping", summary="Ping")
async def ping() -> dict[str, str]:
    return {"message": "pong"}
