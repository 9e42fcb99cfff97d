"""
Authentication Routes
User registration, login, and email verification
"""

from fastapi import APIRouter, Request, status

from auth_gateway.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    VerifyEmailRequest,
    ResendVerificationRequest,
    ActionCodeRequest,
)
from auth_gateway.services.identity_service import ALREADY_VERIFIED
from auth_gateway.utils.dependencies import IdentityServiceDep, EventLoggerDep, SettingsDep
from auth_gateway.utils.errors import AuthError
from auth_gateway.utils.events import LogLevel
from auth_gateway.utils.log_context import AuthContext

router = APIRouter()


def _request_context(request: Request, **fields) -> AuthContext:
    return AuthContext(
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        **fields
    )


@router.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest,
    request: Request,
    identity: IdentityServiceDep,
    events: EventLoggerDep,
    settings: SettingsDep
):
    """
    Register new user

    Creates an unverified account with the identity provider and issues
    an email verification link
    """
    context = _request_context(request, email=payload.email, full_name=payload.full_name)
    events.registration("attempt", context)

    try:
        user = await identity.create_account(payload.email, payload.password, payload.full_name)
    except AuthError as e:
        events.registration("failure", context, error=e)
        raise

    response = {
        "success": True,
        "userId": user.id,
        "emailVerified": user.email_verified,
        "message": "User registered successfully. Please verify your email address."
    }

    # The account exists at this point; a link failure must not fail registration
    try:
        link = await identity.send_verification_link(user.id)
        if settings.expose_verification_link and link != ALREADY_VERIFIED:
            response["verificationLink"] = link
    except AuthError as e:
        events.auth_event(
            "registration_verification_link_failed",
            LogLevel.WARN,
            AuthContext(user_id=user.id, email=user.email),
            error=e
        )
        response["message"] = "User registered successfully. Request a new verification email to verify your address."

    events.registration("success", AuthContext(user_id=user.id, email=user.email, full_name=payload.full_name))
    return response


@router.post("/login", response_model=dict)
async def login_user(payload: LoginRequest, identity: IdentityServiceDep):
    """
    User login

    Authenticates against the identity provider and returns its access token
    """
    result = await identity.password_login(payload.email, payload.password)
    return {
        "success": True,
        "userId": result.user.id,
        "emailVerified": result.user.email_verified,
        "token": result.access_token
    }


@router.post("/verify-email", response_model=dict)
async def verify_email(payload: VerifyEmailRequest, identity: IdentityServiceDep):
    """
    Verify user email address by user ID
    """
    user = await identity.verify_by_identifier(payload.uid)
    return {
        "success": True,
        "emailVerified": user.email_verified,
        "message": "Email verified successfully"
    }


@router.post("/verify-email/action-code", response_model=dict)
async def verify_email_action_code(payload: ActionCodeRequest, identity: IdentityServiceDep):
    """
    Verify user email address with the code from a verification link
    """
    user = await identity.verify_action_code(payload.oob_code)
    return {
        "success": True,
        "userId": user.id,
        "emailVerified": True,
        "message": "Email verified successfully"
    }


@router.post("/resend-verification", response_model=dict)
async def resend_verification_email(
    payload: ResendVerificationRequest,
    identity: IdentityServiceDep,
    settings: SettingsDep
):
    """
    Issue a new email verification link
    """
    link = await identity.send_verification_link(payload.uid)

    if link == ALREADY_VERIFIED:
        return {
            "success": True,
            "alreadyVerified": True,
            "message": ALREADY_VERIFIED
        }

    response = {
        "success": True,
        "alreadyVerified": False,
        "message": "Verification link generated"
    }
    if settings.expose_verification_link:
        response["verificationLink"] = link
    return response
