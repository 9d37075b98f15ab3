"""
Crypto Primitives

base64url, SHA-256, HMAC-SHA256 and JSON payload helpers shared by the token
codecs and the WebAuthn verifier. Malformed input yields ``None``/``False``
rather than an exception; callers treat that as an invalid token.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from typing import Any, Optional


def base64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(value: str) -> Optional[bytes]:
    """
    Decode base64url (padding optional). Returns None when malformed.

    Only the canonical encoding is accepted: no standard-alphabet ``+``/``/``,
    no stray padding and no set bits after the final byte.
    """
    if not isinstance(value, str):
        return None
    unpadded = value.rstrip("=")
    padding = "=" * (-len(unpadded) % 4)
    if value != unpadded and value != unpadded + padding:
        return None
    if "+" in unpadded or "/" in unpadded:
        return None
    try:
        standard = (unpadded + padding).replace("-", "+").replace("_", "/")
        data = base64.b64decode(standard.encode("ascii"), validate=True)
    except (binascii.Error, ValueError, UnicodeEncodeError):
        return None
    if base64url_encode(data) != unpadded:
        return None
    return data


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hmac_sign(payload: str, secret: str) -> Optional[str]:
    """Sign a payload string with HMAC-SHA256; returns a base64url signature."""
    if not secret:
        return None
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return base64url_encode(digest)


def hmac_verify(payload: str, signature: str, secret: str) -> bool:
    """Verify an HMAC-SHA256 signature in constant time."""
    if not secret:
        return False
    sig_bytes = base64url_decode(signature)
    if sig_bytes is None:
        return False
    expected = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return hmac.compare_digest(expected, sig_bytes)


def encode_payload(payload: dict[str, Any]) -> str:
    """Serialize a JSON object and encode it as base64url."""
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True)
    return base64url_encode(raw.encode("utf-8"))


def decode_payload(encoded: str) -> Optional[dict[str, Any]]:
    """Decode a base64url JSON object. Returns None for anything malformed."""
    raw = base64url_decode(encoded)
    if raw is None:
        return None
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    return data
