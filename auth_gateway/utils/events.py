"""
Structured Event Logger
Category-tagged event emission with a per-event level policy

Every record carries a uniform envelope: ``category``, ``event_name`` and
the flattened context. Well-known events take their level from
``EVENT_LEVELS``; the generic pass-through methods accept a caller level.
Emission never raises into the caller.
"""

import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Union

import structlog

from auth_gateway.utils.errors import AuthError
from auth_gateway.utils.log_context import (
    ContextLike, context_to_dict
)
from auth_gateway.utils.logger import REDACTED, redact, is_sensitive_key


class LogCategory(str, Enum):
    AUTH = "auth"
    DATABASE = "database"
    VALIDATION = "validation"
    API = "api"
    BUSINESS = "business"
    SECURITY = "security"
    PERFORMANCE = "performance"
    APPLICATION = "application"


class LogLevel(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


_LEVEL_METHODS = {
    LogLevel.ERROR: "error",
    LogLevel.WARN: "warning",
    LogLevel.INFO: "info",
    LogLevel.DEBUG: "debug",
}

# Level policy for well-known events; callers cannot override these
EVENT_LEVELS: Dict[str, LogLevel] = {
    "registration_attempt": LogLevel.INFO,
    "registration_success": LogLevel.INFO,
    "registration_failure": LogLevel.ERROR,
    "login_success": LogLevel.INFO,
    "login_failure": LogLevel.WARN,
    "permission_denied": LogLevel.WARN,
    "failed_auth_attempt": LogLevel.WARN,
    "database_error": LogLevel.ERROR,
    "database_connection_connected": LogLevel.INFO,
    "database_connection_disconnected": LogLevel.INFO,
    "database_connection_error": LogLevel.ERROR,
    "slow_query": LogLevel.WARN,
    "validation_error": LogLevel.WARN,
    "schema_error": LogLevel.ERROR,
    "api_call": LogLevel.INFO,
    "api_error": LogLevel.ERROR,
    "request_error": LogLevel.ERROR,
    "performance_metric": LogLevel.INFO,
    "operation_timeout": LogLevel.WARN,
    "system_startup": LogLevel.INFO,
    "system_shutdown": LogLevel.WARN,
    "system_config_change": LogLevel.INFO,
    "system_health_check": LogLevel.INFO,
}

_QUIET_LEVELS = (LogLevel.INFO, LogLevel.DEBUG)

# stdlib level spellings accepted from pass-through callers
_LEVEL_ALIASES = {
    "warning": LogLevel.WARN,
    "critical": LogLevel.ERROR,
    "fatal": LogLevel.ERROR,
}

# Envelope keys a context may not overwrite; "event" is structlog's message slot
_RESERVED_KEYS = frozenset({"category", "event_name", "event", "level"})


@dataclass(frozen=True)
class LogEvent:
    """A single emitted record"""
    category: LogCategory
    event_name: str
    level: LogLevel
    context: Dict[str, Any] = field(default_factory=dict)


def _parse_level(requested: Union[LogLevel, str]) -> LogLevel:
    if isinstance(requested, LogLevel):
        return requested
    name = str(requested).lower()
    if name in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[name]
    try:
        return LogLevel(name)
    except ValueError:
        return LogLevel.INFO


def resolve_level(event_name: str, requested: Union[LogLevel, str]) -> LogLevel:
    """
    Pick the level for an event

    Policy table first, then the requested level; failure and error events
    are never emitted below warn.
    """
    level = EVENT_LEVELS.get(event_name) or _parse_level(requested)
    if level in _QUIET_LEVELS:
        if event_name.endswith("_error"):
            return LogLevel.ERROR
        if event_name.endswith(("_failure", "_failed")):
            return LogLevel.WARN
    return level


def serialize_error(error: Union[BaseException, str]) -> Dict[str, Any]:
    """Render an exception or message for the log envelope"""
    if isinstance(error, str):
        return {"message": error}
    data: Dict[str, Any] = {
        "message": str(error),
        "name": type(error).__name__,
    }
    if isinstance(error, AuthError):
        data.update(error.to_dict())
    if error.__traceback__ is not None:
        data["stack"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    return data


class EventLogger:
    """
    Structured event logging handle

    Constructed once by the application and passed to the identity service
    and request handlers.
    """

    def __init__(self, logger=None):
        self._logger = logger if logger is not None else structlog.get_logger("auth_gateway.events")

    def emit(
        self,
        category: Union[LogCategory, str],
        event_name: str,
        level: Union[LogLevel, str] = LogLevel.INFO,
        context: ContextLike = None,
        message: Optional[str] = None,
        error: Union[BaseException, str, None] = None
    ) -> Optional[LogEvent]:
        """
        Emit one event

        Returns the emitted record, or None when emission itself failed.
        """
        try:
            category = LogCategory(category)
            resolved = resolve_level(event_name, level)

            payload = {}
            for key, value in context_to_dict(context).items():
                payload[f"ctx_{key}" if key in _RESERVED_KEYS else key] = value
            if error is not None:
                payload["error"] = serialize_error(error)
            payload = redact(payload)

            log_method = getattr(self._logger, _LEVEL_METHODS[resolved])
            log_method(
                message or f"{category.value.capitalize()} event: {event_name}",
                category=category.value,
                event_name=event_name,
                **payload
            )
            return LogEvent(category, event_name, resolved, payload)
        except Exception as e:
            # the logging path must not interrupt the calling operation
            print(f"Failed to emit log event {event_name}: {e!r}", file=sys.stderr)
            return None

    # Auth

    def auth_event(self, event_name: str, level: Union[LogLevel, str], context: ContextLike = None,
                   error: Union[BaseException, str, None] = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.AUTH, event_name, level, context, f"Auth event: {event_name}", error)

    def registration(self, stage: str, context: ContextLike = None,
                     error: Union[BaseException, str, None] = None) -> Optional[LogEvent]:
        """Registration lifecycle: ``attempt``, ``success`` or ``failure``"""
        return self.emit(
            LogCategory.AUTH,
            f"registration_{stage}",
            LogLevel.ERROR if stage == "failure" else LogLevel.INFO,
            context,
            f"User registration {stage}",
            error
        )

    def login_attempt(self, success: bool, context: ContextLike = None,
                      error: Union[BaseException, str, None] = None) -> Optional[LogEvent]:
        return self.emit(
            LogCategory.AUTH,
            "login_success" if success else "login_failure",
            LogLevel.INFO if success else LogLevel.WARN,
            context,
            "User login successful" if success else "User login failed",
            error
        )

    def permission_denied(self, context: ContextLike = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.AUTH, "permission_denied", LogLevel.WARN, context, "Permission denied")

    # Database

    def database_error(self, error: BaseException, context: ContextLike = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.DATABASE, "database_error", LogLevel.ERROR, context,
                         "Database operation failed", error)

    def database_connection(self, state: str, context: ContextLike = None,
                            error: Optional[BaseException] = None) -> Optional[LogEvent]:
        """Connection lifecycle: ``connected``, ``disconnected`` or ``error``"""
        return self.emit(
            LogCategory.DATABASE,
            f"database_connection_{state}",
            LogLevel.ERROR if state == "error" else LogLevel.INFO,
            context,
            f"Database connection {state}",
            error
        )

    def slow_query(self, query: str, duration: float, threshold: float = 1000,
                   context: ContextLike = None) -> Optional[LogEvent]:
        data = {"query": query, "duration": duration, "threshold": threshold}
        data.update(context_to_dict(context))
        return self.emit(LogCategory.DATABASE, "slow_query", LogLevel.WARN, data,
                         f"Slow query detected ({duration}ms > {threshold}ms)")

    # Validation

    def validation_error(self, field_name: str, reason: str, value: Any = None,
                         context: ContextLike = None) -> Optional[LogEvent]:
        data: Dict[str, Any] = {"field": field_name, "reason": reason}
        if value is not None:
            data["value"] = REDACTED if is_sensitive_key(field_name) else value
        data.update(context_to_dict(context))
        return self.emit(LogCategory.VALIDATION, "validation_error", LogLevel.WARN, data,
                         f"Validation error: {field_name} - {reason}")

    def schema_error(self, error: Union[BaseException, str], schema: str,
                     context: ContextLike = None) -> Optional[LogEvent]:
        data = {"schema": schema}
        data.update(context_to_dict(context))
        return self.emit(LogCategory.VALIDATION, "schema_error", LogLevel.ERROR, data,
                         f"Schema validation error: {schema}", error)

    # API

    def api_call(self, service: str, method: str, url: str, context: ContextLike = None) -> Optional[LogEvent]:
        data = {"service": service, "method": method, "url": url}
        data.update(context_to_dict(context))
        return self.emit(LogCategory.API, "api_call", LogLevel.INFO, data, f"API call: {method} {url}")

    def api_error(self, service: str, error: Union[BaseException, str],
                  context: ContextLike = None) -> Optional[LogEvent]:
        data = {"service": service}
        data.update(context_to_dict(context))
        return self.emit(LogCategory.API, "api_error", LogLevel.ERROR, data, f"API error: {service}", error)

    def request_error(self, method: str, url: str, error: BaseException, status_code: int = 500,
                      context: ContextLike = None) -> Optional[LogEvent]:
        data = {"method": method, "url": url, "status_code": status_code}
        data.update(context_to_dict(context))
        return self.emit(LogCategory.API, "request_error", LogLevel.ERROR, data,
                         f"Request error: {method} {url}", error)

    # Business

    def business_event(self, event_name: str, context: ContextLike = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.BUSINESS, event_name, LogLevel.INFO, context,
                         f"Business event: {event_name}")

    def business_error(self, event_name: str, error: Union[BaseException, str],
                       context: ContextLike = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.BUSINESS, f"{event_name}_error", LogLevel.ERROR, context,
                         f"Business error: {event_name}", error)

    # Security

    def security_event(self, event_name: str, level: Union[LogLevel, str],
                       context: ContextLike = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.SECURITY, event_name, level, context, f"Security event: {event_name}")

    def failed_auth_attempt(self, context: ContextLike = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.SECURITY, "failed_auth_attempt", LogLevel.WARN, context,
                         "Failed authentication attempt")

    # Performance

    def performance(self, operation: str, duration: float, context: ContextLike = None) -> Optional[LogEvent]:
        data = {"operation": operation, "duration": duration}
        data.update(context_to_dict(context))
        return self.emit(LogCategory.PERFORMANCE, "performance_metric", LogLevel.INFO, data,
                         f"Performance: {operation} took {duration}ms")

    def operation_timeout(self, operation: str, timeout: float, context: ContextLike = None) -> Optional[LogEvent]:
        data = {"operation": operation, "timeout": timeout}
        data.update(context_to_dict(context))
        return self.emit(LogCategory.PERFORMANCE, "operation_timeout", LogLevel.WARN, data,
                         f"Operation timeout: {operation} exceeded {timeout}ms")

    # Application

    def application_event(self, event_name: str, level: Union[LogLevel, str],
                          context: ContextLike = None) -> Optional[LogEvent]:
        return self.emit(LogCategory.APPLICATION, event_name, level, context,
                         f"Application event: {event_name}")

    def system_event(self, event: str, context: ContextLike = None) -> Optional[LogEvent]:
        """System lifecycle: ``startup``, ``shutdown``, ``config_change`` or ``health_check``"""
        return self.emit(
            LogCategory.APPLICATION,
            f"system_{event}",
            LogLevel.WARN if event == "shutdown" else LogLevel.INFO,
            context,
            f"System event: {event}"
        )
