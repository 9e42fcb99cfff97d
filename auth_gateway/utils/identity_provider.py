"""
Identity Provider Interface
Narrow contract the identity service depends on

Implementations raise ``ProviderError`` and nothing else; classification
into the gateway's error taxonomy happens in the identity service.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

from auth_gateway.models.user import UserRecord, SignInResult

# Provider codes produced by every implementation
USER_NOT_FOUND = "auth/user-not-found"
EMAIL_ALREADY_EXISTS = "auth/email-already-exists"
INVALID_ID_TOKEN = "auth/invalid-id-token"
INVALID_ARGUMENT = "auth/invalid-argument"
NETWORK = "network"
TIMEOUT = "timeout"


class ProviderError(Exception):
    """
    Failure reported by the identity provider

    Attributes:
        code: Provider error code (SDK code or REST signal such as INVALID_PASSWORD)
        status_code: Upstream HTTP status when one was received
    """

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.code == USER_NOT_FOUND

    @property
    def is_transport(self) -> bool:
        return self.code in (NETWORK, TIMEOUT)

    def __repr__(self) -> str:
        return f"ProviderError(code={self.code!r}, status_code={self.status_code}, message={self.message!r})"


class IdentityProvider(ABC):
    """Account operations offered by the external identity provider"""

    @abstractmethod
    async def get_user(self, uid: str) -> UserRecord:
        """Look up an account by identifier"""

    @abstractmethod
    async def get_user_by_email(self, email: str) -> UserRecord:
        """Look up an account by email"""

    @abstractmethod
    async def create_user(self, email: str, password: str, display_name: Optional[str] = None) -> UserRecord:
        """Create an unverified account"""

    @abstractmethod
    async def generate_email_verification_link(self, email: str) -> str:
        """Issue an email verification link"""

    @abstractmethod
    async def mark_email_verified(self, uid: str) -> None:
        """Set the account's email verification flag"""

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> SignInResult:
        """Password grant"""

    @abstractmethod
    async def verify_id_token(self, id_token: str) -> Dict[str, Any]:
        """Decode and validate an access token, returning its claims"""

    @abstractmethod
    async def apply_action_code(self, oob_code: str) -> str:
        """Consume an email verification action code, returning the verified email"""

    async def start(self) -> None:
        """Acquire long-lived resources"""

    async def close(self) -> None:
        """Release long-lived resources"""
