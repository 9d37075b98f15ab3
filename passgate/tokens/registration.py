"""
HMAC registration codec.

Registration tokens are short-lived and single-purpose: they let a client
register a passkey for one user after the application has verified the
identifier (typically via OTP), without re-verifying it.

Wire format: base64url({"userId", "identifier", "exp"}).base64url(sig)
"""

from __future__ import annotations

from typing import Optional

from passgate.tokens.base import DecodedRegistration, RegistrationPayload
from passgate.tokens.hmac_codec import HmacCodec

DEFAULT_REGISTRATION_TTL = 300  # seconds


class HmacRegistrationCodec:

    def __init__(self, secret: str, ttl: float = DEFAULT_REGISTRATION_TTL) -> None:
        self.ttl = ttl
        self._codec = HmacCodec(secret, ttl=ttl)

    async def encode(self, payload: RegistrationPayload) -> str:
        return self._codec.encode(
            {"userId": payload.user_id, "identifier": payload.identifier}
        )

    async def decode(self, token: str) -> Optional[DecodedRegistration]:
        decoded = self._codec.decode(token)
        if decoded is None:
            return None

        user_id = decoded.payload.get("userId")
        identifier = decoded.payload.get("identifier")
        if not isinstance(user_id, str) or not isinstance(identifier, str):
            return None

        return DecodedRegistration(
            user_id=user_id,
            identifier=identifier,
            exp=decoded.exp,
            expired=decoded.expired,
        )
