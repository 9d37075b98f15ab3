"""
passgate adapters

Storage and transport contracts plus the bundled implementations.
"""

from passgate.adapters.base import (
    CredentialStore,
    OtpRecord,
    OtpStore,
    OtpTransport,
    SessionRecord,
    SessionStore,
    SessionTransport,
    StorageAdapter,
)
from passgate.adapters.memory import MemoryStorage
from passgate.adapters.transports import (
    ConsoleOtpTransport,
    CookieSessionTransport,
    HeaderSessionTransport,
    MemorySessionTransport,
    SessionCookieOptions,
)

__all__ = [
    # Contracts
    "StorageAdapter",
    "OtpStore",
    "SessionStore",
    "CredentialStore",
    "OtpTransport",
    "SessionTransport",
    "OtpRecord",
    "SessionRecord",
    # Implementations
    "MemoryStorage",
    "ConsoleOtpTransport",
    "CookieSessionTransport",
    "HeaderSessionTransport",
    "MemorySessionTransport",
    "SessionCookieOptions",
]
