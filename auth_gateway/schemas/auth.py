"""
Authentication request schemas

Pydantic models for request validation. Field errors are rendered as
400 responses by the gateway's validation handler.
"""

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128


def _validate_email(v: str) -> str:
    try:
        result = validate_email(v.strip(), check_deliverability=False)
    except EmailNotValidError:
        raise ValueError('Invalid email format')
    return result.normalized.lower()


class RegisterRequest(BaseModel):
    """Schema for registering a new user"""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    full_name: str = Field(..., alias="fullName")
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Full name is required')
        if len(v) > 100:
            raise ValueError('Full name must be at most 100 characters long')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long')
        if len(v) > MAX_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at most {MAX_PASSWORD_LENGTH} characters long')
        return v


class LoginRequest(BaseModel):
    """Schema for password login"""
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError('Password is required')
        return v


class VerifyEmailRequest(BaseModel):
    """Schema for verifying an account by identifier"""
    uid: str

    @field_validator('uid')
    @classmethod
    def validate_uid(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('User ID is required')
        return v


class ResendVerificationRequest(VerifyEmailRequest):
    """Schema for requesting a new verification link"""


class ActionCodeRequest(BaseModel):
    """Schema for verifying an emailed action code"""
    model_config = ConfigDict(populate_by_name=True)

    oob_code: str = Field(..., alias="oobCode")

    @field_validator('oob_code')
    @classmethod
    def validate_oob_code(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Verification code is required')
        return v
