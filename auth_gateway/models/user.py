"""
User Models
Read-only projections of identity provider account data
"""

from typing import Optional
from datetime import datetime, timezone
from dataclasses import dataclass


@dataclass(frozen=True)
class UserRecord:
    """Projection of the provider's account object"""
    id: str
    email: str
    email_verified: bool
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SignInResult:
    """Raw outcome of a successful password grant"""
    local_id: str
    id_token: str
    refresh_token: str
    expires_in: Optional[int] = None


@dataclass(frozen=True)
class LoginResult:
    """Verified login: canonical user plus opaque provider tokens"""
    user: UserRecord
    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None


def timestamp_ms_to_datetime(value: Optional[int]) -> Optional[datetime]:
    """Convert provider millisecond timestamps to aware datetimes"""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
