"""
passgate token codecs

Stateless HMAC-signed tokens for sessions and passkey registration.
"""

from passgate.tokens.base import (
    DecodedRegistration,
    DecodedSession,
    RegistrationCodec,
    RegistrationPayload,
    SessionCodec,
    SessionPayload,
)
from passgate.tokens.hmac_codec import DecodedToken, HmacCodec, TokenSigningError
from passgate.tokens.opaque import OpaqueSessionCodec
from passgate.tokens.registration import HmacRegistrationCodec
from passgate.tokens.session import HmacSessionCodec

__all__ = [
    # Contracts
    "SessionCodec",
    "RegistrationCodec",
    "SessionPayload",
    "DecodedSession",
    "RegistrationPayload",
    "DecodedRegistration",
    # Generic codec
    "HmacCodec",
    "DecodedToken",
    "TokenSigningError",
    # Implementations
    "HmacSessionCodec",
    "OpaqueSessionCodec",
    "HmacRegistrationCodec",
]
