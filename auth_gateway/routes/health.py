"""
Health check routes for the auth gateway
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from auth_gateway.utils.dependencies import EventLoggerDep, SettingsDep
from auth_gateway.utils.log_context import ApplicationContext

router = APIRouter()


@router.get("/health")
async def health_check(settings: SettingsDep, events: EventLoggerDep):
    """Service health check"""
    events.system_event(
        "health_check",
        ApplicationContext(component=settings.service_name, version=settings.service_version)
    )
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/")
async def root(settings: SettingsDep):
    """Root endpoint"""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "description": "Registration, login and email verification gateway",
        "docs": "/docs"
    }
