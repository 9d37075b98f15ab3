"""
Adapter contracts.

The core never touches a database, a mailer or an HTTP response directly.
Storage and transport are injected through these protocols; implementations
own their consistency guarantees (in particular, ``OtpStore.verify`` must
compare and delete atomically).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from passgate.webauthn.types import CredentialRecord, StoredCredential


@dataclass
class OtpRecord:
    """A pending one-time password, keyed by identifier."""

    identifier: str
    otp: str
    expires_at: datetime


@dataclass
class SessionRecord:
    """Server-side session state; expires_at None means never expires."""

    session_id: str
    user_id: str
    expires_at: Optional[datetime] = None


class OtpStore(Protocol):

    async def store(self, record: OtpRecord) -> None:
        ...

    async def verify(self, identifier: str, otp: str) -> bool:
        """Return True and consume the record iff the code matches and is unexpired."""
        ...


class SessionStore(Protocol):

    async def store(self, record: SessionRecord) -> None:
        ...

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        ...

    async def delete(self, session_id: str) -> None:
        ...


class CredentialStore(Protocol):

    async def store(self, record: CredentialRecord) -> None:
        ...

    async def get(self, user_id: str) -> List[StoredCredential]:
        ...

    async def get_by_id(self, credential_id: str) -> Optional[CredentialRecord]:
        ...

    async def update_counter(self, credential_id: str, counter: int) -> None:
        ...


class StorageAdapter(Protocol):
    """Persistence for OTPs, sessions and passkey credentials."""

    otp: OtpStore
    session: SessionStore
    credential: CredentialStore


class OtpTransport(Protocol):
    """Delivers OTP codes out of band (email, SMS, ...)."""

    # OTP validity in seconds
    ttl: float

    async def send(self, identifier: str, otp: str) -> None:
        ...


class SessionTransport(Protocol):
    """Carries the session token between client and server."""

    def get(self) -> Optional[str]:
        """Read the token from the incoming request."""
        ...

    def set(self, token: str) -> str:
        """Store the token; return what goes in the response body."""
        ...

    def clear(self) -> None:
        ...
