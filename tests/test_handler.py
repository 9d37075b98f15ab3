"""
passgate HTTP Handler Tests
"""

import asyncio

import pytest
import structlog
from fastapi.testclient import TestClient
from pydantic import ValidationError

from passgate.adapters import MemorySessionTransport, SessionCookieOptions
from passgate.api import (
    cookie_transport_factory,
    create_auth_app,
    header_transport_factory,
    parse_auth_request,
)

from helpers.authenticator import SoftwareAuthenticator
from helpers.factories import ORIGIN, build_auth


@pytest.fixture
def auth():
    return build_auth()


@pytest.fixture
def client(auth):
    """Test client using an insecure cookie so it is sent over http."""
    app = create_auth_app(
        auth,
        transport_factory=cookie_transport_factory(SessionCookieOptions(secure=False)),
    )
    with TestClient(app) as test_client:
        yield test_client


def call(client, method, **args):
    return client.post("/auth", json={"method": method, "args": args})


def registration_token(auth, user_id="user_1", identifier="a@example.com"):
    result = asyncio.run(auth.create_registration_token(user_id, identifier))
    return result["registrationToken"]


def register_via_api(client, auth, authenticator):
    token = registration_token(auth)
    options = call(client, "generateRegistrationOptions", registrationToken=token).json()["options"]
    credential = authenticator.make_credential(options)
    return call(client, "verifyRegistration", registrationToken=token, credential=credential)


# ============================================================================
# Request Validation
# ============================================================================


class TestRequestValidation:
    """Tests for malformed requests."""

    def test_not_json(self, client):
        response = client.post("/auth", content=b"not json", headers={"content-type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "invalid_request"}

    def test_unknown_method(self, client):
        response = call(client, "deleteEverything")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_missing_args(self, client):
        response = client.post("/auth", json={"method": "verifyOtp", "args": {"identifier": "a@example.com"}})
        assert response.status_code == 400

    def test_bad_credential_shape(self, client, auth):
        """Test credentials are validated before reaching the verifier."""
        response = call(
            client,
            "verifyAuthentication",
            credential={"id": "x", "rawId": "x", "type": "password", "response": {}},
        )
        assert response.status_code == 400

    def test_parse_auth_request(self):
        """Test the discriminated union picks the right request."""
        request = parse_auth_request({"method": "signOut"})
        assert request.method == "signOut"

        request = parse_auth_request({"method": "requestOtp", "args": {"identifier": "a@example.com"}})
        assert request.args.identifier == "a@example.com"

        with pytest.raises(ValidationError):
            parse_auth_request({"method": "requestOtp"})


# ============================================================================
# OTP
# ============================================================================


class TestOtpEndpoints:
    """Tests for OTP over HTTP."""

    def test_request_and_verify(self, client, auth):
        """Test the OTP scenario end to end."""
        response = call(client, "requestOtp", identifier="a@example.com")
        assert response.status_code == 200
        assert response.json() == {"success": True}

        code = auth.otp_transport.last_code("a@example.com")
        assert call(client, "verifyOtp", identifier="a@example.com", otp=code).json() == {"success": True}

        again = call(client, "verifyOtp", identifier="a@example.com", otp=code)
        assert again.status_code == 200
        assert again.json() == {"success": False, "error": "invalid_otp"}

    def test_adapter_failure_is_internal_error(self, client, auth):
        """Test infrastructure exceptions become 500 responses."""

        async def broken_send(identifier, otp):
            raise ConnectionError("smtp down")

        auth.otp_transport.send = broken_send
        response = call(client, "requestOtp", identifier="a@example.com")
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "internal_error"}


# ============================================================================
# Passkeys and Sessions
# ============================================================================


class TestPasskeyEndpoints:
    """Tests for passkey ceremonies and session cookies over HTTP."""

    def test_register_sign_out_sign_in(self, client, auth):
        """Test registration, session cookie, sign-out and sign-in."""
        authenticator = SoftwareAuthenticator(origin=ORIGIN)

        registered = register_via_api(client, auth, authenticator)
        assert registered.status_code == 200
        assert registered.json() == {"success": True, "session": {"token": "", "userId": "user_1"}}
        assert "session=" in registered.headers["set-cookie"]

        session = call(client, "getSession")
        assert session.status_code == 200
        assert session.json() == {"success": True, "session": {"userId": "user_1"}}

        assert call(client, "signOut").json() == {"success": True}
        assert call(client, "getSession").status_code == 401

        options = call(client, "generateAuthenticationOptions").json()["options"]
        assertion = authenticator.get_assertion(options)
        signed_in = call(client, "verifyAuthentication", credential=assertion)
        assert signed_in.json()["session"]["userId"] == "user_1"
        assert call(client, "getSession").status_code == 200

    def test_unfamiliar_transport_hints(self, client, auth):
        """Test transport hints are stored as given, including unlisted values."""
        authenticator = SoftwareAuthenticator(origin=ORIGIN)
        token = registration_token(auth)
        options = call(client, "generateRegistrationOptions", registrationToken=token).json()["options"]
        credential = authenticator.make_credential(options, transports=["smart-card", "future-radio"])

        response = call(client, "verifyRegistration", registrationToken=token, credential=credential)
        assert response.json()["success"] is True

        [stored] = asyncio.run(auth.storage.credential.get("user_1"))
        assert stored.transports == ["smart-card", "future-radio"]

    def test_invalid_registration_token(self, client):
        response = call(client, "generateRegistrationOptions", registrationToken="bad")
        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "invalid_token"}

    def test_unknown_credential(self, client):
        stranger = SoftwareAuthenticator(origin=ORIGIN)
        stranger.make_credential({"challenge": "x", "rp": {"id": "localhost"}})

        options = call(client, "generateAuthenticationOptions").json()["options"]
        response = call(client, "verifyAuthentication", credential=stranger.get_assertion(options))
        assert response.json() == {"success": False, "error": "credential_not_found"}

    def test_get_session_unauthenticated(self, client):
        response = call(client, "getSession")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "invalid_token"}


class TestHeaderTransport:
    """Tests for bearer-token sessions."""

    def test_bearer_session(self, auth):
        """Test a session token presented in the Authorization header."""
        created = asyncio.run(
            auth.with_session_transport(MemorySessionTransport()).create_session("user_1")
        )
        token = created["session"]["token"]

        app = create_auth_app(auth, transport_factory=header_transport_factory())
        with TestClient(app) as client:
            response = client.post(
                "/auth",
                json={"method": "getSession"},
                headers={"Authorization": f"Bearer {token}"},
            )
            assert response.status_code == 200
            assert response.json() == {"success": True, "session": {"userId": "user_1"}}

            assert call(client, "getSession").status_code == 401


# ============================================================================
# Application
# ============================================================================


class TestApplication:
    """Test application factory."""

    def test_settings_configure_logging(self, auth):
        from passgate import PassgateSettings

        settings = PassgateSettings(secret="app-secret", log_format="text")
        try:
            app = create_auth_app(auth, settings=settings)
            assert structlog.is_configured()

            with TestClient(app) as client:
                response = call(client, "getSession")
            assert response.status_code == 401
            assert response.json() == {"success": False, "error": "invalid_token"}
        finally:
            structlog.reset_defaults()
