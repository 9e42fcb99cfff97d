"""
Identity Service
Account registration, verification and login delegated to the identity provider

Every provider failure is caught here, classified into the error taxonomy,
logged, and raised as an ``AuthError``. Nothing is retried.
"""

from typing import Optional

from auth_gateway.models.user import UserRecord, LoginResult
from auth_gateway.utils.errors import (
    AuthError,
    UserExistsError,
    InvalidCredentialsError,
    EmailNotVerifiedError,
    UserNotFoundError,
    InvalidTokenError,
    ProviderFailureError,
)
from auth_gateway.utils.events import EventLogger, LogLevel
from auth_gateway.utils.identity_provider import (
    IdentityProvider,
    ProviderError,
    EMAIL_ALREADY_EXISTS,
    INVALID_ARGUMENT,
    INVALID_ID_TOKEN,
)
from auth_gateway.utils.log_context import AuthContext, SecurityContext

ALREADY_VERIFIED = "Email is already verified"

# Password grant failure signals, matched on the exact provider code
INVALID_CREDENTIAL_SIGNALS = frozenset({
    "INVALID_PASSWORD",
    "INVALID_EMAIL",
    "INVALID_LOGIN_CREDENTIALS",
    "MISSING_PASSWORD",
    "MISSING_EMAIL",
})
# Unknown accounts are reported as bad credentials so login does not reveal existence
ACCOUNT_NOT_FOUND_SIGNALS = frozenset({
    "EMAIL_NOT_FOUND",
    "USER_NOT_FOUND",
})
EMAIL_NOT_VERIFIED_SIGNALS = frozenset({
    "EMAIL_NOT_VERIFIED",
})
INVALID_ACTION_CODE_SIGNALS = frozenset({
    "INVALID_OOB_CODE",
    "EXPIRED_OOB_CODE",
})

PROVIDER_UNAVAILABLE_MESSAGE = "Authentication provider unavailable"


class IdentityService:
    """Identity provider adapter"""

    def __init__(
        self,
        provider: IdentityProvider,
        event_logger: EventLogger,
        provider_failure_status: int = 500
    ):
        self._provider = provider
        self._events = event_logger
        self._failure_status = provider_failure_status

    def _provider_failure(self, error: ProviderError, fallback_message: str) -> ProviderFailureError:
        """Wrap an unclassified provider error, keeping its code for diagnostics"""
        message = error.message or fallback_message
        if error.is_transport:
            return ProviderFailureError(
                message,
                http_status=self._failure_status,
                provider_code=error.code,
                public_message=PROVIDER_UNAVAILABLE_MESSAGE
            )
        if error.code == INVALID_ARGUMENT:
            return ProviderFailureError(
                message,
                http_status=400,
                provider_code=error.code,
                public_message="Request rejected by authentication provider"
            )
        return ProviderFailureError(message, http_status=self._failure_status, provider_code=error.code)

    def classify_login_failure(self, error: ProviderError) -> AuthError:
        """
        Map a password grant failure to the taxonomy

        Args:
            error: Failure reported by the provider

        Returns:
            AuthError: InvalidCredentials, EmailNotVerified or ProviderFailure
        """
        signal = (error.code or "").upper()
        if signal in INVALID_CREDENTIAL_SIGNALS or signal in ACCOUNT_NOT_FOUND_SIGNALS:
            return InvalidCredentialsError(provider_code=signal)
        if signal in EMAIL_NOT_VERIFIED_SIGNALS:
            return EmailNotVerifiedError(provider_code=signal)
        return self._provider_failure(error, "Login failed")

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        """Look up an account by email, None when it does not exist"""
        try:
            return await self._provider.get_user_by_email(email)
        except ProviderError as e:
            if e.is_not_found:
                return None
            failure = self._provider_failure(e, "Failed to get user")
            self._events.auth_event("user_lookup_failed", LogLevel.ERROR, AuthContext(email=email), error=failure)
            raise failure from e

    async def get_user(self, uid: str) -> UserRecord:
        """Look up an account by identifier"""
        try:
            return await self._provider.get_user(uid)
        except ProviderError as e:
            if e.is_not_found:
                self._events.auth_event("user_not_found", LogLevel.INFO, AuthContext(user_id=uid))
                raise UserNotFoundError(uid) from e
            failure = self._provider_failure(e, "Failed to get user")
            self._events.auth_event("user_lookup_failed", LogLevel.ERROR, AuthContext(user_id=uid), error=failure)
            raise failure from e

    async def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> UserRecord:
        """
        Create an unverified account

        The email is probed first so an existing account fails without any
        provider write.

        Raises:
            UserExistsError: An account already uses the email
            ProviderFailureError: Any other provider failure
        """
        context = AuthContext(email=email, full_name=display_name)
        self._events.auth_event("user_creation_started", LogLevel.DEBUG, context)

        existing = await self.get_user_by_email(email)
        if existing is not None:
            self._events.auth_event("user_exists", LogLevel.WARN, AuthContext(user_id=existing.id, email=email))
            raise UserExistsError(email)

        try:
            user = await self._provider.create_user(email, password, display_name)
        except ProviderError as e:
            if e.code == EMAIL_ALREADY_EXISTS:
                self._events.auth_event("user_exists", LogLevel.WARN, context)
                raise UserExistsError(email) from e
            failure = self._provider_failure(e, "Failed to create user")
            self._events.auth_event("user_creation_failed", LogLevel.ERROR, context, error=failure)
            raise failure from e

        self._events.auth_event("user_created", LogLevel.INFO, AuthContext(user_id=user.id, email=user.email))
        return user

    async def send_verification_link(self, uid: str) -> str:
        """
        Issue an email verification link

        Returns:
            str: The link, or ``ALREADY_VERIFIED`` when there is nothing to verify
        """
        user = await self.get_user(uid)

        if not user.email:
            message = "User does not have an email address"
            failure = ProviderFailureError(message, http_status=400, public_message=message)
            self._events.auth_event("email_verification_failed", LogLevel.WARN, AuthContext(user_id=uid), error=failure)
            raise failure

        context = AuthContext(user_id=uid, email=user.email)
        if user.email_verified:
            self._events.auth_event("email_already_verified", LogLevel.INFO, context)
            return ALREADY_VERIFIED

        try:
            link = await self._provider.generate_email_verification_link(user.email)
        except ProviderError as e:
            if e.is_not_found:
                raise UserNotFoundError(uid) from e
            failure = self._provider_failure(e, "Failed to send email verification")
            self._events.auth_event("email_verification_failed", LogLevel.ERROR, context, error=failure)
            raise failure from e

        self._events.auth_event("email_verification_sent", LogLevel.INFO, context)
        return link

    async def verify_by_identifier(self, uid: str) -> UserRecord:
        """
        Mark an account's email as verified

        Idempotent: an already verified account is returned without a
        provider write.
        """
        user = await self.get_user(uid)
        if user.email_verified:
            return user

        context = AuthContext(user_id=uid, email=user.email)
        try:
            await self._provider.mark_email_verified(uid)
            updated = await self._provider.get_user(uid)
        except ProviderError as e:
            if e.is_not_found:
                raise UserNotFoundError(uid) from e
            failure = self._provider_failure(e, "Failed to verify email")
            self._events.auth_event("email_verification_update_failed", LogLevel.ERROR, context, error=failure)
            raise failure from e

        self._events.auth_event("email_verified", LogLevel.INFO, context)
        return updated

    async def verify_action_code(self, oob_code: str) -> UserRecord:
        """
        Consume an emailed verification action code

        Raises:
            InvalidTokenError: The code is unknown, used or expired
        """
        try:
            email = await self._provider.apply_action_code(oob_code)
        except ProviderError as e:
            signal = (e.code or "").upper()
            if signal in INVALID_ACTION_CODE_SIGNALS:
                error = InvalidTokenError(provider_code=signal)
                self._events.auth_event("email_verification_failed", LogLevel.WARN, AuthContext(reason=signal), error=error)
                raise error from e
            failure = self._provider_failure(e, "Failed to apply verification code")
            self._events.auth_event("email_verification_failed", LogLevel.ERROR, AuthContext(), error=failure)
            raise failure from e

        user = await self.get_user_by_email(email)
        if user is None:
            raise UserNotFoundError(email)

        self._events.auth_event("email_verified", LogLevel.INFO, AuthContext(user_id=user.id, email=user.email))
        return user

    async def password_login(self, email: str, password: str) -> LoginResult:
        """
        Log in with email and password

        The returned access token is verified and the user re-read by the
        token's subject before anything from the login response is trusted.

        Raises:
            InvalidCredentialsError: Wrong password or unknown account
            EmailNotVerifiedError: Credentials are valid but the email is unverified
            ProviderFailureError: Transport or unclassified provider failure
        """
        context = AuthContext(email=email)
        self._events.auth_event("login_started", LogLevel.DEBUG, context)

        try:
            sign_in = await self._provider.sign_in_with_password(email, password)
        except ProviderError as e:
            if e.is_transport:
                failure = ProviderFailureError(
                    "Network error during login",
                    http_status=self._failure_status,
                    provider_code=e.code,
                    public_message=PROVIDER_UNAVAILABLE_MESSAGE
                )
                self._events.auth_event("login_network_error", LogLevel.ERROR, context, error=failure)
                raise failure from e

            error = self.classify_login_failure(e)
            self._events.login_attempt(False, AuthContext(email=email, reason=e.code), error=error)
            if isinstance(error, InvalidCredentialsError):
                self._events.failed_auth_attempt(SecurityContext(email=email, reason=e.code))
            raise error from e

        try:
            claims = await self._provider.verify_id_token(sign_in.id_token)
        except ProviderError as e:
            failure = self._provider_failure(e, "Access token verification failed")
            self._events.auth_event("login_error", LogLevel.ERROR, context, error=failure)
            raise failure from e

        uid = claims.get("uid") or claims.get("sub")
        if uid != sign_in.local_id:
            self._events.security_event(
                "token_subject_mismatch",
                LogLevel.WARN,
                SecurityContext(email=email, user_id=uid, extra={"claimed_user_id": sign_in.local_id})
            )
            raise ProviderFailureError(
                "Token subject does not match login identity",
                http_status=self._failure_status,
                provider_code=INVALID_ID_TOKEN
            )

        try:
            user = await self._provider.get_user(uid)
        except ProviderError as e:
            failure = self._provider_failure(e, "Failed to load user after login")
            self._events.auth_event("login_error", LogLevel.ERROR, AuthContext(user_id=uid, email=email), error=failure)
            raise failure from e

        if not user.email_verified:
            error = EmailNotVerifiedError()
            self._events.login_attempt(False, AuthContext(user_id=user.id, email=user.email, reason="email_not_verified"),
                                       error=error)
            raise error

        self._events.login_attempt(True, AuthContext(user_id=user.id, email=user.email))
        return LoginResult(
            user=user,
            access_token=sign_in.id_token,
            refresh_token=sign_in.refresh_token,
            expires_in=sign_in.expires_in
        )
