"""
WebAuthn binary structures.

Parsers for clientDataJSON, authenticator data, COSE EC2 keys and DER-encoded
ECDSA signatures. Every function raises ``WebAuthnError`` on malformed input;
nothing here is best-effort.

Authenticator data layout:
  0..31   rpIdHash (32 bytes)
  32      flags (1 byte: UP=0x01, UV=0x04, AT=0x40, ED=0x80)
  33..36  signCount (4 bytes, big-endian)
  37..    attestedCredentialData (only when AT is set):
            aaguid (16) | credentialIdLength (2, big-endian) |
            credentialId | credentialPublicKey (COSE, CBOR map)
"""

from __future__ import annotations

import json
import struct
from typing import Any

from cryptography.hazmat.primitives.asymmetric import ec

from passgate.codec.cbor import CborError, decode_cbor_prefix
from passgate.codec.crypto import base64url_decode
from passgate.webauthn.errors import WebAuthnError, WebAuthnFailure
from passgate.webauthn.types import (
    AttestedCredentialData,
    AuthenticatorData,
    ClientData,
    COSEAlgorithm,
    COSEKeyType,
)

AUTH_DATA_MIN_LENGTH = 37
AAGUID_LENGTH = 16
P256_COORDINATE_LENGTH = 32
UNCOMPRESSED_POINT_LENGTH = 1 + 2 * P256_COORDINATE_LENGTH

# COSE key map labels
COSE_KTY = 1
COSE_ALG = 3
COSE_EC2_CRV = -1
COSE_EC2_X = -2
COSE_EC2_Y = -3
COSE_CRV_P256 = 1


def decode_client_data(encoded: str) -> tuple[ClientData, bytes]:
    """Decode base64url clientDataJSON. Returns the parsed data and the raw bytes."""
    raw = base64url_decode(encoded)
    if raw is None:
        raise WebAuthnError(WebAuthnFailure.INVALID_ENCODING, "clientDataJSON is not base64url")

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise WebAuthnError(WebAuthnFailure.INVALID_ENCODING, f"clientDataJSON is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise WebAuthnError(WebAuthnFailure.INVALID_ENCODING, "clientDataJSON is not an object")

    return ClientData(
        type=str(data.get("type", "")),
        challenge=str(data.get("challenge", "")),
        origin=str(data.get("origin", "")),
        cross_origin=bool(data.get("crossOrigin", False)),
    ), raw


def parse_authenticator_data(data: bytes) -> AuthenticatorData:
    """Parse authenticator data, including attested credential data when flagged."""
    if len(data) < AUTH_DATA_MIN_LENGTH:
        raise WebAuthnError(
            WebAuthnFailure.MALFORMED_AUTH_DATA,
            f"authenticator data too short ({len(data)} bytes)",
        )

    rp_id_hash = bytes(data[:32])
    flags = data[32]
    sign_count = struct.unpack(">I", data[33:37])[0]

    parsed = AuthenticatorData(rp_id_hash=rp_id_hash, flags=flags, sign_count=sign_count)

    if not parsed.has_attested_credential_data:
        return parsed

    offset = AUTH_DATA_MIN_LENGTH
    if len(data) < offset + AAGUID_LENGTH + 2:
        raise WebAuthnError(WebAuthnFailure.MALFORMED_AUTH_DATA, "attested credential data too short")

    aaguid = bytes(data[offset:offset + AAGUID_LENGTH])
    offset += AAGUID_LENGTH

    cred_id_len = struct.unpack(">H", data[offset:offset + 2])[0]
    offset += 2

    if len(data) < offset + cred_id_len:
        raise WebAuthnError(WebAuthnFailure.MALFORMED_AUTH_DATA, "credential id truncated")
    credential_id = bytes(data[offset:offset + cred_id_len])
    offset += cred_id_len

    try:
        cose_key, _ = decode_cbor_prefix(data[offset:])
    except CborError as e:
        raise WebAuthnError(WebAuthnFailure.MALFORMED_AUTH_DATA, f"credential public key: {e}") from e

    if not isinstance(cose_key, dict):
        raise WebAuthnError(WebAuthnFailure.MALFORMED_AUTH_DATA, "credential public key is not a map")

    parsed.attested_credential_data = AttestedCredentialData(
        aaguid=aaguid,
        credential_id=credential_id,
        cose_key=cose_key,
    )
    return parsed


def serialize_cose_key(cose_key: dict[Any, Any]) -> bytes:
    """
    Convert an ES256 COSE key into the stored uncompressed point form.

    Only EC2 keys with alg ES256 are accepted. Output: 0x04 || x || y.
    """
    if cose_key.get(COSE_KTY) != COSEKeyType.EC2 or cose_key.get(COSE_ALG) != COSEAlgorithm.ES256:
        raise WebAuthnError(WebAuthnFailure.UNSUPPORTED_KEY, "only ES256 (P-256) keys are supported")

    crv = cose_key.get(COSE_EC2_CRV, COSE_CRV_P256)
    if crv != COSE_CRV_P256:
        raise WebAuthnError(WebAuthnFailure.UNSUPPORTED_KEY, f"unsupported curve {crv}")

    x = cose_key.get(COSE_EC2_X)
    y = cose_key.get(COSE_EC2_Y)
    if (
        not isinstance(x, bytes)
        or not isinstance(y, bytes)
        or len(x) != P256_COORDINATE_LENGTH
        or len(y) != P256_COORDINATE_LENGTH
    ):
        raise WebAuthnError(WebAuthnFailure.UNSUPPORTED_KEY, "invalid EC key coordinates")

    return b"\x04" + x + y


def load_stored_public_key(public_key: bytes) -> ec.EllipticCurvePublicKey:
    """Load a stored 65-byte uncompressed P-256 point."""
    if len(public_key) != UNCOMPRESSED_POINT_LENGTH or public_key[0] != 0x04:
        raise WebAuthnError(WebAuthnFailure.UNSUPPORTED_KEY, "invalid stored public key format")
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), bytes(public_key))
    except ValueError as e:
        raise WebAuthnError(WebAuthnFailure.UNSUPPORTED_KEY, f"stored key is not on P-256: {e}") from e


def _read_der_integer(der: bytes, offset: int) -> tuple[bytes, int]:
    if offset + 2 > len(der) or der[offset] != 0x02:
        raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "expected DER integer tag")
    length = der[offset + 1]
    start = offset + 2
    end = start + length
    if length == 0 or length & 0x80 or end > len(der):
        raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "bad DER integer length")
    if der[start] & 0x80:
        raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "negative DER integer")
    return der[start:end], end


def der_to_raw(der: bytes) -> bytes:
    """
    Convert a DER-encoded ECDSA signature to raw r || s (32 bytes each).

    DER form: 0x30 len 0x02 rLen r 0x02 sLen s. Leading zero padding on each
    integer is stripped and the value left-padded back to 32 bytes.
    """
    if len(der) < 2 or der[0] != 0x30:
        raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "expected DER sequence")
    if der[1] & 0x80 or der[1] != len(der) - 2:
        raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "bad DER sequence length")

    r, offset = _read_der_integer(der, 2)
    s, offset = _read_der_integer(der, offset)
    if offset != len(der):
        raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "trailing bytes after DER signature")

    raw = b""
    for part in (r, s):
        stripped = part.lstrip(b"\x00")
        if len(stripped) > P256_COORDINATE_LENGTH:
            raise WebAuthnError(WebAuthnFailure.INVALID_SIGNATURE, "DER integer too long for P-256")
        raw += stripped.rjust(P256_COORDINATE_LENGTH, b"\x00")
    return raw
