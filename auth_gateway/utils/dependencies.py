"""
FastAPI Dependencies
Process-wide handles built by the application lifespan
"""

from typing import Annotated

from fastapi import Depends, Request

from auth_gateway.config import Settings
from auth_gateway.services.identity_service import IdentityService
from auth_gateway.utils.events import EventLogger


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_event_logger(request: Request) -> EventLogger:
    return request.app.state.event_logger


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity_service


# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings_dep)]
EventLoggerDep = Annotated[EventLogger, Depends(get_event_logger)]
IdentityServiceDep = Annotated[IdentityService, Depends(get_identity_service)]
