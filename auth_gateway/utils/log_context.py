"""
Log Context Models
Typed per-category context attached to structured events
"""

from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any, Mapping, Union


@dataclass
class LogContext:
    """Base context: declared fields plus an open ``extra`` slot"""
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten declared fields (skipping unset ones) and extra metadata"""
        data: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is not None:
                data[f.name] = value
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


@dataclass
class AuthContext(LogContext):
    user_id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    reason: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None


@dataclass
class DatabaseContext(LogContext):
    query: Optional[str] = None
    table: Optional[str] = None
    operation: Optional[str] = None
    duration: Optional[float] = None


@dataclass
class ValidationContext(LogContext):
    field: Optional[str] = None
    reason: Optional[str] = None
    schema: Optional[str] = None
    path: Optional[str] = None


@dataclass
class ApiContext(LogContext):
    method: Optional[str] = None
    url: Optional[str] = None
    status_code: Optional[int] = None
    response_time: Optional[float] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class BusinessContext(LogContext):
    user_id: Optional[str] = None
    resource_id: Optional[str] = None
    operation: Optional[str] = None


@dataclass
class SecurityContext(LogContext):
    user_id: Optional[str] = None
    email: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None
    reason: Optional[str] = None
    attempt_count: Optional[int] = None


@dataclass
class PerformanceContext(LogContext):
    operation: Optional[str] = None
    duration: Optional[float] = None
    threshold: Optional[float] = None


@dataclass
class ApplicationContext(LogContext):
    component: Optional[str] = None
    environment: Optional[str] = None
    version: Optional[str] = None


ContextLike = Union[LogContext, Mapping[str, Any], None]


def context_to_dict(context: ContextLike) -> Dict[str, Any]:
    """Normalize a typed context, plain mapping or None into a dict"""
    if context is None:
        return {}
    if isinstance(context, LogContext):
        return context.to_dict()
    return dict(context)
