"""
Firebase Identity Provider
Firebase Admin SDK for account management, Identity Toolkit REST API for
password sign-in and action codes

Admin SDK calls are blocking and run in worker threads. REST calls share a
pooled AsyncClient created at startup. Every call is bounded by the
configured timeout and never retried here.
"""

import asyncio
import functools
from typing import Optional, Dict, Any, Callable

import firebase_admin
import httpx
import structlog
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions

from auth_gateway.config import Settings
from auth_gateway.models.user import UserRecord, SignInResult, timestamp_ms_to_datetime
from auth_gateway.utils.identity_provider import (
    IdentityProvider,
    ProviderError,
    USER_NOT_FOUND,
    EMAIL_ALREADY_EXISTS,
    INVALID_ID_TOKEN,
    INVALID_ARGUMENT,
    NETWORK,
    TIMEOUT,
)

logger = structlog.get_logger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Most specific classes first: Expired/Revoked subclass InvalidIdTokenError
_SDK_ERROR_CODES = (
    (auth.UserNotFoundError, USER_NOT_FOUND),
    (auth.EmailAlreadyExistsError, EMAIL_ALREADY_EXISTS),
    (auth.ExpiredIdTokenError, "auth/id-token-expired"),
    (auth.RevokedIdTokenError, "auth/id-token-revoked"),
    (auth.InvalidIdTokenError, INVALID_ID_TOKEN),
    (auth.UserDisabledError, "auth/user-disabled"),
    (auth.CertificateFetchError, NETWORK),
)

_TRANSPORT_CODES = {
    firebase_exceptions.UNAVAILABLE: NETWORK,
    firebase_exceptions.DEADLINE_EXCEEDED: TIMEOUT,
}


def extract_signal(message: str) -> str:
    """
    Extract the error code from an Identity Toolkit error message

    Messages look like ``INVALID_PASSWORD`` or
    ``WEAK_PASSWORD : Password should be at least 6 characters``.
    """
    return message.split(" : ", 1)[0].strip()


def to_user_record(user) -> UserRecord:
    """Project an Admin SDK user record"""
    metadata = getattr(user, "user_metadata", None)
    created = metadata.creation_timestamp if metadata is not None else None
    return UserRecord(
        id=user.uid,
        email=user.email or "",
        email_verified=bool(user.email_verified),
        display_name=user.display_name,
        created_at=timestamp_ms_to_datetime(created)
    )


def translate_sdk_error(error: Exception) -> ProviderError:
    """Normalize an Admin SDK exception into a ProviderError"""
    for error_class, code in _SDK_ERROR_CODES:
        if isinstance(error, error_class):
            return ProviderError(str(error), code=code)
    if isinstance(error, firebase_exceptions.FirebaseError):
        code = _TRANSPORT_CODES.get(error.code, error.code)
        status = error.http_response.status_code if error.http_response is not None else None
        return ProviderError(str(error), code=code, status_code=status)
    if isinstance(error, ValueError):
        return ProviderError(str(error), code=INVALID_ARGUMENT, status_code=400)
    return ProviderError(str(error))


class FirebaseIdentityProvider(IdentityProvider):
    """
    Identity provider backed by Firebase Authentication

    Lifecycle:
        - Call start() during app startup (FastAPI lifespan)
        - Call close() during app shutdown
    """

    # Connection pool settings
    MAX_CONNECTIONS = 100
    MAX_KEEPALIVE = 20
    KEEPALIVE_EXPIRY = 5.0

    APP_NAME = "auth-gateway"

    def __init__(
        self,
        settings: Settings,
        firebase_app: Optional[firebase_admin.App] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.settings = settings
        self.base_url = settings.identity_toolkit_url.rstrip('/')
        self.timeout = settings.provider_timeout_seconds
        self._app = firebase_app
        self._owns_app = False
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Initialize the Firebase app and the shared HTTP client"""
        if self._app is None:
            self.settings.validate_provider_settings()
            self._app = self._initialize_app()
            self._owns_app = True

        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(
                    max_connections=self.MAX_CONNECTIONS,
                    max_keepalive_connections=self.MAX_KEEPALIVE,
                    keepalive_expiry=self.KEEPALIVE_EXPIRY
                ),
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport
            )

        logger.info(
            "Firebase identity provider started",
            project_id=self.settings.firebase_project_id,
            timeout=self.timeout
        )

    def _initialize_app(self) -> firebase_admin.App:
        certificate = credentials.Certificate({
            "type": "service_account",
            "project_id": self.settings.firebase_project_id,
            "client_email": self.settings.firebase_client_email,
            "private_key": self.settings.firebase_private_key,
            "token_uri": GOOGLE_TOKEN_URI,
        })
        return firebase_admin.initialize_app(
            certificate,
            options={
                "projectId": self.settings.firebase_project_id,
                "httpTimeout": self.timeout,
            },
            name=self.APP_NAME
        )

    async def close(self) -> None:
        """Close the HTTP client and release the Firebase app"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._owns_app and self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
            self._owns_app = False
        logger.info("Firebase identity provider stopped")

    async def _call_sdk(self, func: Callable, *args, **kwargs):
        """Run a blocking Admin SDK call in a worker thread with a timeout"""
        call = functools.partial(func, *args, app=self._app, **kwargs)
        try:
            return await asyncio.wait_for(asyncio.to_thread(call), timeout=self.timeout)
        except asyncio.TimeoutError:
            name = getattr(func, "__name__", "Identity provider call")
            raise ProviderError(f"{name} timed out after {self.timeout}s", code=TIMEOUT)
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise translate_sdk_error(e) from e

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST to the Identity Toolkit REST API"""
        if self._client is None:
            raise ProviderError("Firebase identity provider not started", code=NETWORK)

        url = f"{self.base_url}/{endpoint}"
        try:
            response = await self._client.post(
                url,
                params={"key": self.settings.firebase_web_api_key},
                json=payload
            )
        except httpx.TimeoutException as e:
            raise ProviderError(f"Identity Toolkit request timed out: {endpoint}", code=TIMEOUT) from e
        except httpx.RequestError as e:
            raise ProviderError(f"Failed to reach Identity Toolkit: {e}", code=NETWORK) from e

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Invalid response from Identity Toolkit: HTTP {response.status_code}",
                code="invalid-response",
                status_code=response.status_code
            ) from e

        if response.is_error:
            error = data.get("error") if isinstance(data, dict) else None
            message = (error or {}).get("message") or f"HTTP {response.status_code}"
            raise ProviderError(message, code=extract_signal(message), status_code=response.status_code)

        return data

    async def get_user(self, uid: str) -> UserRecord:
        return to_user_record(await self._call_sdk(auth.get_user, uid))

    async def get_user_by_email(self, email: str) -> UserRecord:
        return to_user_record(await self._call_sdk(auth.get_user_by_email, email))

    async def create_user(self, email: str, password: str, display_name: Optional[str] = None) -> UserRecord:
        user = await self._call_sdk(
            auth.create_user,
            email=email,
            password=password,
            display_name=display_name,
            email_verified=False
        )
        return to_user_record(user)

    async def generate_email_verification_link(self, email: str) -> str:
        action_code_settings = auth.ActionCodeSettings(
            url=self.settings.email_verification_redirect_url,
            handle_code_in_app=False
        )
        return await self._call_sdk(
            auth.generate_email_verification_link,
            email,
            action_code_settings=action_code_settings
        )

    async def mark_email_verified(self, uid: str) -> None:
        await self._call_sdk(auth.update_user, uid, email_verified=True)

    async def verify_id_token(self, id_token: str) -> Dict[str, Any]:
        return await self._call_sdk(auth.verify_id_token, id_token, check_revoked=True)

    async def sign_in_with_password(self, email: str, password: str) -> SignInResult:
        data = await self._post(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True}
        )
        if not data.get("localId") or not data.get("idToken"):
            raise ProviderError("Sign-in response is missing the account or token", code="invalid-response")
        expires_in = data.get("expiresIn")
        return SignInResult(
            local_id=data["localId"],
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken", ""),
            expires_in=int(expires_in) if expires_in is not None else None
        )

    async def apply_action_code(self, oob_code: str) -> str:
        data = await self._post("accounts:update", {"oobCode": oob_code})
        if not data.get("email"):
            raise ProviderError("Action code response is missing the email", code="invalid-response")
        return data["email"]
