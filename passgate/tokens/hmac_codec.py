"""
Generic HMAC-signed token codec.

Token format: base64url(JSON payload + expiry).base64url(HMAC-SHA256)

The signature is checked before any payload field is read. A token whose
signature is valid but whose expiry has passed still decodes, with
``expired=True``; callers decide what an expired token means (the session
layer falls back to storage, the registration layer rejects it).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from passgate.codec.crypto import decode_payload, encode_payload, hmac_sign, hmac_verify


class TokenSigningError(RuntimeError):
    """HMAC signing failed; the codec secret is unusable."""


@dataclass
class DecodedToken:
    """A token whose signature verified."""

    payload: Dict[str, Any] = field(default_factory=dict)
    exp: float = 0.0
    expired: bool = False


class HmacCodec:
    """
    Signs and verifies JSON payloads with a shared secret.

    Args:
        secret: HMAC key material
        ttl: default lifetime in seconds when encode() is given no expiry
        exp_field: payload key holding the expiry timestamp
    """

    def __init__(
        self,
        secret: str,
        ttl: Optional[float] = None,
        exp_field: str = "exp",
    ) -> None:
        self.secret = secret
        self.ttl = ttl
        self.exp_field = exp_field

    def encode(
        self,
        payload: Dict[str, Any],
        expires_in: Optional[float] = None,
        expires_at: Optional[float] = None,
    ) -> str:
        """
        Encode and sign a payload.

        Exactly one of ``expires_in`` (seconds from now) or ``expires_at``
        (unix seconds) may be given; with neither, the codec ttl applies.
        """
        if expires_in is not None and expires_at is not None:
            raise ValueError("Pass either expires_in or expires_at, not both")
        if self.exp_field in payload:
            raise ValueError(f"Payload must not contain reserved key {self.exp_field!r}")

        if expires_at is None:
            lifetime = expires_in if expires_in is not None else self.ttl
            if lifetime is None:
                raise ValueError("No expiry given and codec has no default ttl")
            expires_at = time.time() + lifetime

        encoded = encode_payload({**payload, self.exp_field: expires_at})
        signature = hmac_sign(encoded, self.secret)
        if signature is None:
            raise TokenSigningError("HMAC signing failed")
        return f"{encoded}.{signature}"

    def decode(self, token: str) -> Optional[DecodedToken]:
        """Verify and decode a token. Returns None for anything not authentic."""
        if not isinstance(token, str):
            return None

        parts = token.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return None
        encoded, signature = parts

        if not hmac_verify(encoded, signature, self.secret):
            return None

        data = decode_payload(encoded)
        if data is None:
            return None

        exp = data.pop(self.exp_field, None)
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None

        return DecodedToken(payload=data, exp=float(exp), expired=exp < time.time())
