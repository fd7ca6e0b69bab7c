"""API v1 router configuration."""

from fastapi import APIRouter

from mri_records.api.v1.endpoints import (
    admin,
    analytics,
    auth,
    chat,
    events,
    health,
    notifications,
    patients,
    queries,
    realtime,
    results,
    staff,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(results.router, tags=["Results"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
api_router.include_router(staff.router, tags=["Staff"])
api_router.include_router(admin.router)
api_router.include_router(queries.router, prefix="/queries", tags=["Queries"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(chat.router, prefix="/chat", tags=["Chat"])
api_router.include_router(realtime.router, tags=["Realtime"])
