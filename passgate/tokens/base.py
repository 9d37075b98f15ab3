"""
Token codec contracts.

The auth service talks to codecs only through these protocols, so HMAC,
opaque or JWT-style implementations are interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class SessionPayload:
    """Fields carried by a session token."""

    session_id: str
    user_id: str
    # Inactivity deadline (unix seconds); None = never expires
    session_exp: Optional[float] = None


@dataclass
class DecodedSession:
    """A session token that passed signature verification."""

    session_id: str
    user_id: str
    session_exp: Optional[float]
    token_exp: float
    expired: bool

    def session_expired(self, now: float) -> bool:
        """Inactivity window passed (independent of token expiry)."""
        return self.session_exp is not None and self.session_exp < now


@dataclass
class RegistrationPayload:
    user_id: str
    identifier: str


@dataclass
class DecodedRegistration:
    user_id: str
    identifier: str
    exp: float
    expired: bool


class SessionCodec(Protocol):
    """Encodes session tokens with a revocation-check window (token_exp)."""

    async def encode(
        self,
        payload: SessionPayload,
        token_exp: Optional[float] = None,
    ) -> str:
        """Encode a session; ``token_exp`` preserves an existing window."""
        ...

    async def decode(self, token: str) -> Optional[DecodedSession]:
        ...


class RegistrationCodec(Protocol):
    """Encodes short-lived registration tokens."""

    async def encode(self, payload: RegistrationPayload) -> str:
        ...

    async def decode(self, token: str) -> Optional[DecodedRegistration]:
        ...
