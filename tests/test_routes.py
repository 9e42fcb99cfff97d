"""
Unit tests for the authentication API routes
"""

from unittest.mock import AsyncMock, patch

import pytest

from auth_gateway.services.identity_service import ALREADY_VERIFIED
from auth_gateway.utils.identity_provider import ProviderError, NETWORK

REGISTER_PAYLOAD = {
    "email": "new@example.com",
    "password": "secret123",
    "fullName": "New User"
}


class TestRegister:
    """Test POST /register"""

    def test_register_success(self, client, fake_provider, recorder):
        response = client.post("/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["emailVerified"] is False
        assert data["message"] == "User registered successfully. Please verify your email address."
        assert "verificationLink" not in data
        assert fake_provider.users[data["userId"]].display_name == "New User"
        assert "registration_attempt" in recorder.event_names()
        assert "registration_success" in recorder.event_names()

    def test_register_exposes_link_when_enabled(self, make_client):
        client = make_client(expose_verification_link=True)

        response = client.post("/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 201
        data = response.json()
        assert data["verificationLink"].endswith(f"oobCode=code-{data['userId']}")

    def test_register_duplicate_email(self, client, fake_provider, recorder):
        fake_provider.add_user("new@example.com")

        response = client.post("/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "User with email new@example.com already exists"
        }
        assert fake_provider.writes == []
        assert recorder.named("registration_failure")[0]["level"] == "error"

    def test_register_error_code_exposed_when_enabled(self, make_client, fake_provider):
        fake_provider.add_user("new@example.com")
        client = make_client(expose_error_codes=True)

        response = client.post("/register", json=REGISTER_PAYLOAD)

        assert response.json()["code"] == "auth/email-already-exists"

    def test_register_short_password(self, client, fake_provider, recorder):
        response = client.post("/register", json={**REGISTER_PAYLOAD, "password": "123"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Password must be at least 6 characters long"
        }
        assert fake_provider.writes == []
        assert recorder.named("validation_error")[0]["field"] == "password"

    def test_register_missing_fields(self, client):
        response = client.post("/register", json={"email": "new@example.com"})

        assert response.status_code == 400
        assert response.json()["message"] == "Missing required fields: fullName, password"

    def test_register_invalid_email(self, client):
        response = client.post("/register", json={**REGISTER_PAYLOAD, "email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email format"

    @pytest.mark.parametrize("email", [
        "a..b@example.com",
        ".a@example.com",
        "a@-example.com",
        "a@exa_mple.com",
    ])
    def test_register_malformed_email(self, client, fake_provider, email):
        response = client.post("/register", json={**REGISTER_PAYLOAD, "email": email})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid email format"}
        assert fake_provider.writes == []

    def test_register_email_normalized(self, client, fake_provider):
        response = client.post("/register", json={**REGISTER_PAYLOAD, "email": "  New@Example.COM "})

        assert response.status_code == 201
        assert fake_provider.users[response.json()["userId"]].email == "new@example.com"

    def test_register_survives_link_failure(self, client, fake_provider, recorder):
        fake_provider.fail("generate_email_verification_link", ProviderError("limit", code="auth/too-many-requests"))

        response = client.post("/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 201
        assert "Request a new verification email" in response.json()["message"]
        assert recorder.named("registration_verification_link_failed")[0]["level"] == "warning"

    def test_register_provider_unavailable(self, client, fake_provider):
        fake_provider.fail("get_user_by_email", ProviderError("connection refused", code=NETWORK))

        response = client.post("/register", json=REGISTER_PAYLOAD)

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Authentication provider unavailable"}


class TestLogin:
    """Test POST /login"""

    def test_login_success(self, client, fake_provider):
        user = fake_provider.add_user("a@example.com", password="secret123", verified=True)

        response = client.post("/login", json={"email": "a@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "userId": user.id,
            "emailVerified": True,
            "token": f"token-{user.id}"
        }

    def test_login_wrong_password(self, client, fake_provider):
        fake_provider.add_user("a@example.com", password="secret123", verified=True)

        response = client.post("/login", json={"email": "a@example.com", "password": "wrong-password"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid email or password"}

    def test_login_unverified(self, client, fake_provider):
        fake_provider.add_user("a@example.com", password="secret123", verified=False)

        response = client.post("/login", json={"email": "a@example.com", "password": "secret123"})

        assert response.status_code == 403
        assert response.json()["message"] == "Email address has not been verified"

    def test_login_empty_password(self, client):
        response = client.post("/login", json={"email": "a@example.com", "password": ""})

        assert response.status_code == 400
        assert response.json()["message"] == "Password is required"

    def test_login_provider_failure_status_configurable(self, make_client, fake_provider):
        fake_provider.fail("sign_in_with_password", ProviderError("connection refused", code=NETWORK))
        client = make_client(provider_failure_status=503)

        response = client.post("/login", json={"email": "a@example.com", "password": "secret123"})

        assert response.status_code == 503


class TestVerifyEmail:
    """Test email verification routes"""

    def test_verify_by_uid(self, client, fake_provider):
        user = fake_provider.add_user("a@example.com")

        response = client.post("/verify-email", json={"uid": user.id})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "emailVerified": True,
            "message": "Email verified successfully"
        }

    def test_verify_unknown_uid(self, client):
        response = client.post("/verify-email", json={"uid": "uid-missing"})

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "User not found: uid-missing"}

    def test_verify_blank_uid(self, client):
        response = client.post("/verify-email", json={"uid": "   "})

        assert response.status_code == 400
        assert response.json()["message"] == "User ID is required"

    def test_register_verify_login_round_trip(self, client):
        registered = client.post("/register", json=REGISTER_PAYLOAD).json()
        login_payload = {"email": "new@example.com", "password": "secret123"}

        assert client.post("/login", json=login_payload).status_code == 403

        verified = client.post("/verify-email", json={"uid": registered["userId"]})
        assert verified.json()["emailVerified"] is True

        login = client.post("/login", json=login_payload)
        assert login.status_code == 200
        assert login.json()["userId"] == registered["userId"]

    def test_verify_action_code(self, make_client, fake_provider):
        client = make_client(expose_verification_link=True)
        registered = client.post("/register", json=REGISTER_PAYLOAD).json()
        oob_code = registered["verificationLink"].split("oobCode=")[1]

        response = client.post("/verify-email/action-code", json={"oobCode": oob_code})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "userId": registered["userId"],
            "emailVerified": True,
            "message": "Email verified successfully"
        }
        assert fake_provider.users[registered["userId"]].email_verified is True

    def test_verify_invalid_action_code(self, client):
        response = client.post("/verify-email/action-code", json={"oobCode": "bogus"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid or expired verification token"}


class TestResendVerification:
    """Test POST /resend-verification"""

    def test_resend_for_unverified(self, client, fake_provider):
        user = fake_provider.add_user("a@example.com")

        response = client.post("/resend-verification", json={"uid": user.id})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "alreadyVerified": False,
            "message": "Verification link generated"
        }

    def test_resend_for_verified(self, client, fake_provider):
        user = fake_provider.add_user("a@example.com", verified=True)

        response = client.post("/resend-verification", json={"uid": user.id})

        assert response.json() == {
            "success": True,
            "alreadyVerified": True,
            "message": ALREADY_VERIFIED
        }


class TestErrorHandling:
    """Test the catch-all handler"""

    def test_unexpected_error_development(self, client, recorder):
        with patch(
            "auth_gateway.services.identity_service.IdentityService.verify_by_identifier",
            new=AsyncMock(side_effect=RuntimeError("kaboom"))
        ):
            response = client.post("/verify-email", json={"uid": "uid-1"})

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "kaboom"
        assert "RuntimeError" in data["stack"]
        assert recorder.named("request_error")[0]["level"] == "error"

    def test_unexpected_error_production(self, make_client):
        client = make_client(environment="production")
        with patch(
            "auth_gateway.services.identity_service.IdentityService.verify_by_identifier",
            new=AsyncMock(side_effect=RuntimeError("kaboom"))
        ):
            response = client.post("/verify-email", json={"uid": "uid-1"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error"}

    def test_unknown_route(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}

    def test_api_prefix(self, make_client, fake_provider):
        client = make_client(api_prefix="/api/auth")
        user = fake_provider.add_user("a@example.com")

        assert client.post("/api/auth/verify-email", json={"uid": user.id}).status_code == 200
        assert client.post("/verify-email", json={"uid": user.id}).status_code == 404
