"""
Auth Gateway - FastAPI Application
User registration, login and email verification backed by Firebase Authentication
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from auth_gateway.config import Settings, get_settings
from auth_gateway.routes import auth, health
from auth_gateway.services.identity_service import IdentityService
from auth_gateway.utils.error_handlers import register_exception_handlers
from auth_gateway.utils.events import EventLogger, LogCategory, LogLevel
from auth_gateway.utils.firebase_client import FirebaseIdentityProvider
from auth_gateway.utils.identity_provider import IdentityProvider
from auth_gateway.utils.log_context import ApiContext, ApplicationContext
from auth_gateway.utils.logger import setup_logging, flush_logging


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[IdentityProvider] = None,
    event_logger: Optional[EventLogger] = None
) -> FastAPI:
    """
    Build the gateway application

    Args:
        settings: Gateway settings, loaded from the environment when omitted
        provider: Identity provider, Firebase when omitted
        event_logger: Structured event logger, structlog-backed when omitted
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler"""
        setup_logging(settings.logging_config_path, settings.log_level, settings.log_format)

        events = event_logger or EventLogger()
        identity_provider = provider or FirebaseIdentityProvider(settings)
        app_context = ApplicationContext(
            component=settings.service_name,
            environment=settings.environment,
            version=settings.service_version
        )

        try:
            await identity_provider.start()
        except Exception as e:
            events.emit(
                LogCategory.APPLICATION,
                "startup_error",
                LogLevel.ERROR,
                app_context,
                "Gateway startup failed",
                error=e
            )
            raise

        app.state.event_logger = events
        app.state.identity_provider = identity_provider
        app.state.identity_service = IdentityService(
            identity_provider,
            events,
            provider_failure_status=settings.provider_failure_status
        )
        events.system_event("startup", app_context)

        yield

        events.system_event("shutdown", app_context)
        await identity_provider.close()
        flush_logging()

    app = FastAPI(
        title="Auth Gateway",
        description="User registration, login and email verification backed by Firebase Authentication",
        version=settings.service_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_request_timing(request: Request, call_next):
        """Record request duration as a performance event"""
        started = time.perf_counter()
        response = await call_next(request)
        events = getattr(request.app.state, "event_logger", None)
        if events is not None:
            events.performance(
                "http_request",
                round((time.perf_counter() - started) * 1000, 2),
                ApiContext(method=request.method, url=request.url.path, status_code=response.status_code)
            )
        return response

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix=settings.api_prefix, tags=["Authentication"])

    return app


app = create_app()
