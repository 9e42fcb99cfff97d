"""
Authentication Errors
Closed error taxonomy shared by the identity service and the HTTP layer
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Failure kinds surfaced to request handlers"""
    USER_EXISTS = "user_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    USER_NOT_FOUND = "user_not_found"
    INVALID_TOKEN = "invalid_token"
    PROVIDER_FAILURE = "provider_failure"


# Fixed status per kind; provider failures default to 500 but accept an override
KIND_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.USER_EXISTS: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.EMAIL_NOT_VERIFIED: 403,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.INVALID_TOKEN: 400,
    ErrorKind.PROVIDER_FAILURE: 500,
}

KIND_CODES: Dict[ErrorKind, str] = {
    ErrorKind.USER_EXISTS: "auth/email-already-exists",
    ErrorKind.INVALID_CREDENTIALS: "auth/invalid-credential",
    ErrorKind.EMAIL_NOT_VERIFIED: "auth/email-not-verified",
    ErrorKind.USER_NOT_FOUND: "auth/user-not-found",
    ErrorKind.INVALID_TOKEN: "auth/invalid-action-code",
    ErrorKind.PROVIDER_FAILURE: "auth/provider-failure",
}

PROVIDER_FAILURE_PUBLIC_MESSAGE = "Authentication provider request failed"


class AuthError(Exception):
    """
    Base class for every classified authentication failure

    Attributes are fixed at construction and exposed read-only.
    """

    kind: ErrorKind = ErrorKind.PROVIDER_FAILURE

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        provider_code: Optional[str] = None,
        public_message: Optional[str] = None
    ):
        super().__init__(message)
        self._message = message
        self._http_status = http_status if http_status is not None else KIND_STATUS[self.kind]
        self._provider_code = provider_code
        self._public_message = public_message

    @property
    def message(self) -> str:
        return self._message

    @property
    def http_status(self) -> int:
        return self._http_status

    @property
    def provider_code(self) -> Optional[str]:
        return self._provider_code

    @property
    def code(self) -> str:
        """Stable symbolic code for the kind"""
        return KIND_CODES[self.kind]

    @property
    def public_message(self) -> str:
        """Message safe to return to API clients"""
        if self._public_message is not None:
            return self._public_message
        return self._message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for log context"""
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self._message,
            "http_status": self._http_status,
            "provider_code": self._provider_code,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self._message!r}, "
            f"http_status={self._http_status}, provider_code={self._provider_code!r})"
        )


class UserExistsError(AuthError):
    kind = ErrorKind.USER_EXISTS

    def __init__(self, email: str):
        super().__init__(f"User with email {email} already exists")


class InvalidCredentialsError(AuthError):
    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(self, message: str = "Invalid email or password", provider_code: Optional[str] = None):
        super().__init__(message, provider_code=provider_code)


class EmailNotVerifiedError(AuthError):
    kind = ErrorKind.EMAIL_NOT_VERIFIED

    def __init__(self, message: str = "Email address has not been verified", provider_code: Optional[str] = None):
        super().__init__(message, provider_code=provider_code)


class UserNotFoundError(AuthError):
    kind = ErrorKind.USER_NOT_FOUND

    def __init__(self, identifier: str):
        super().__init__(f"User not found: {identifier}")


class InvalidTokenError(AuthError):
    kind = ErrorKind.INVALID_TOKEN

    def __init__(self, message: str = "Invalid or expired verification token", provider_code: Optional[str] = None):
        super().__init__(message, provider_code=provider_code)


class ProviderFailureError(AuthError):
    """
    Identity provider failure that maps to no specific kind

    The raw provider message stays on ``message`` for diagnostics while
    clients only see ``public_message``.
    """

    kind = ErrorKind.PROVIDER_FAILURE

    def __init__(
        self,
        message: str,
        http_status: int = 500,
        provider_code: Optional[str] = None,
        public_message: str = PROVIDER_FAILURE_PUBLIC_MESSAGE
    ):
        super().__init__(
            message,
            http_status=http_status,
            provider_code=provider_code,
            public_message=public_message
        )


class ConfigurationError(Exception):
    """Raised when required gateway configuration is missing or invalid"""
