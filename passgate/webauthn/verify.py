"""
WebAuthn ceremony verification.

Verifies registration (attestation) and authentication (assertion)
responses against an expected challenge, origin and RP ID.

Attestation statements are not verified: "none" attestation is trusted and
whatever ``fmt``/``attStmt`` the authenticator sends is ignored. Only ES256
(ECDSA P-256 / SHA-256) credentials are accepted.

References:
- W3C WebAuthn Level 3 §7.1 (registration) and §7.2 (authentication)
"""

from __future__ import annotations

import hmac

import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from passgate.codec.cbor import CborError, decode_cbor
from passgate.codec.crypto import base64url_decode, base64url_encode, sha256
from passgate.webauthn.authdata import (
    decode_client_data,
    der_to_raw,
    load_stored_public_key,
    parse_authenticator_data,
    serialize_cose_key,
)
from passgate.webauthn.errors import WebAuthnError, WebAuthnFailure
from passgate.webauthn.types import (
    AuthenticationCredential,
    AuthenticatorData,
    ClientData,
    RegistrationCredential,
    StoredCredential,
    VerifiedAuthentication,
    VerifiedRegistration,
)

logger = structlog.get_logger(__name__)

CREATE_TYPE = "webauthn.create"
GET_TYPE = "webauthn.get"


def _check_client_data(
    client_data: ClientData,
    expected_type: str,
    expected_challenge: str,
    expected_origin: str,
) -> None:
    if client_data.type != expected_type:
        raise WebAuthnError(
            WebAuthnFailure.TYPE_MISMATCH,
            f"expected {expected_type}, got {client_data.type!r}",
        )
    if not hmac.compare_digest(client_data.challenge.encode(), expected_challenge.encode()):
        raise WebAuthnError(WebAuthnFailure.CHALLENGE_MISMATCH, "challenge mismatch")
    if client_data.origin != expected_origin:
        raise WebAuthnError(
            WebAuthnFailure.ORIGIN_MISMATCH,
            f"got {client_data.origin!r}, expected {expected_origin!r}",
        )


def _check_authenticator_data(
    auth_data: AuthenticatorData,
    expected_rp_id: str,
    require_user_verification: bool,
) -> None:
    expected_rp_id_hash = sha256(expected_rp_id.encode("utf-8"))
    if not hmac.compare_digest(auth_data.rp_id_hash, expected_rp_id_hash):
        raise WebAuthnError(WebAuthnFailure.RP_ID_MISMATCH, "RP ID hash mismatch")

    if not auth_data.user_present:
        raise WebAuthnError(WebAuthnFailure.USER_PRESENCE_REQUIRED, "user presence flag not set")

    if require_user_verification and not auth_data.user_verified:
        raise WebAuthnError(WebAuthnFailure.USER_VERIFICATION_REQUIRED, "user verification flag not set")


def verify_registration_credential(
    credential: RegistrationCredential,
    expected_challenge: str,
    expected_origin: str,
    expected_rp_id: str,
    require_user_verification: bool = False,
) -> VerifiedRegistration:
    """
    Verify a registration credential from navigator.credentials.create().

    Returns the credential id (base64url), the public key as an uncompressed
    P-256 point, the initial signature counter and the transport hints.
    """
    client_data, _ = decode_client_data(credential.client_data_json)
    _check_client_data(client_data, CREATE_TYPE, expected_challenge, expected_origin)

    attestation_bytes = base64url_decode(credential.attestation_object)
    if attestation_bytes is None:
        raise WebAuthnError(WebAuthnFailure.INVALID_ENCODING, "attestationObject is not base64url")

    try:
        attestation = decode_cbor(attestation_bytes)
    except CborError as e:
        raise WebAuthnError(WebAuthnFailure.MALFORMED_AUTH_DATA, f"attestationObject: {e}") from e

    auth_data_bytes = attestation.get("authData") if isinstance(attestation, dict) else None
    if not isinstance(auth_data_bytes, bytes):
        raise WebAuthnError(WebAuthnFailure.MISSING_AUTH_DATA, "missing authData in attestationObject")

    auth_data = parse_authenticator_data(auth_data_bytes)
    _check_authenticator_data(auth_data, expected_rp_id, require_user_verification)

    attested = auth_data.attested_credential_data
    if attested is None or not attested.credential_id or not attested.cose_key:
        raise WebAuthnError(WebAuthnFailure.MISSING_CREDENTIAL_DATA, "no credential data in authData")

    public_key = serialize_cose_key(attested.cose_key)

    logger.debug(
        "Registration credential verified",
        attestation_format=attestation.get("fmt", "none"),
        sign_count=auth_data.sign_count,
    )

    return VerifiedRegistration(
        credential_id=base64url_encode(attested.credential_id),
        public_key=public_key,
        counter=auth_data.sign_count,
        transports=list(credential.transports),
    )


def verify_authentication_credential(
    credential: AuthenticationCredential,
    stored_credential: StoredCredential,
    expected_challenge: str,
    expected_origin: str,
    expected_rp_id: str,
    require_user_verification: bool = False,
) -> VerifiedAuthentication:
    """
    Verify an assertion from navigator.credentials.get() against a stored credential.

    The signed message is authenticatorData || SHA-256(clientDataJSON).
    """
    client_data, client_data_bytes = decode_client_data(credential.client_data_json)
    _check_client_data(client_data, GET_TYPE, expected_challenge, expected_origin)

    auth_data_bytes = base64url_decode(credential.authenticator_data)
    if auth_data_bytes is None:
        raise WebAuthnError(WebAuthnFailure.INVALID_ENCODING, "authenticatorData is not base64url")

    auth_data = parse_authenticator_data(auth_data_bytes)
    _check_authenticator_data(auth_data, expected_rp_id, require_user_verification)

    # Counter of 0 on either side means the authenticator has no counter
    if (
        stored_credential.counter != 0
        and auth_data.sign_count != 0
        and auth_data.sign_count <= stored_credential.counter
    ):
        logger.warning(
            "Sign count regression detected - possible cloned authenticator",
            credential_id=stored_credential.id,
            stored_count=stored_credential.counter,
            received_count=auth_data.sign_count,
        )
        raise WebAuthnError(WebAuthnFailure.REPLAY_DETECTED, "signature counter replay detected")

    signature = base64url_decode(credential.signature)
    if signature is None:
        raise WebAuthnError(WebAuthnFailure.INVALID_ENCODING, "signature is not base64url")

    signed_data = auth_data_bytes + sha256(client_data_bytes)
    if not _verify_es256(stored_credential.public_key, signature, signed_data):
        raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "signature verification failed")

    return VerifiedAuthentication(counter=auth_data.sign_count)


def _verify_es256(public_key: bytes, der_signature: bytes, data: bytes) -> bool:
    """Verify a DER ECDSA signature against a stored uncompressed P-256 point."""
    raw = der_to_raw(der_signature)
    r = int.from_bytes(raw[:32], "big")
    s = int.from_bytes(raw[32:], "big")

    key = load_stored_public_key(public_key)
    try:
        key.verify(encode_dss_signature(r, s), data, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True
