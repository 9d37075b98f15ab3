"""
WebAuthn verification errors.

Parsing and verification failures inside the verifier are raised as
``WebAuthnError``; the auth service maps every one of them to
``verification_failed`` at the ceremony boundary.
"""

from __future__ import annotations

from enum import Enum


class WebAuthnFailure(str, Enum):
    """Reason a ceremony failed verification."""
    INVALID_ENCODING = "invalid_encoding"
    TYPE_MISMATCH = "type_mismatch"
    CHALLENGE_MISMATCH = "challenge_mismatch"
    ORIGIN_MISMATCH = "origin_mismatch"
    MISSING_AUTH_DATA = "missing_auth_data"
    MALFORMED_AUTH_DATA = "malformed_auth_data"
    RP_ID_MISMATCH = "rp_id_mismatch"
    USER_PRESENCE_REQUIRED = "user_presence_required"
    USER_VERIFICATION_REQUIRED = "user_verification_required"
    MISSING_CREDENTIAL_DATA = "missing_credential_data"
    UNSUPPORTED_KEY = "unsupported_key"
    REPLAY_DETECTED = "replay_detected"
    INVALID_SIGNATURE = "invalid_signature"


class WebAuthnError(Exception):
    """A WebAuthn ceremony could not be verified."""

    def __init__(self, reason: WebAuthnFailure, message: str = "") -> None:
        self.reason = reason
        self.message = message or reason.value
        super().__init__(f"{reason.value}: {self.message}")
