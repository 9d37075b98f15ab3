"""
passgate - OTP and passkey authentication primitives

- One-time passwords with atomic single-use verification
- WebAuthn passkey registration and authentication (ES256, "none" attestation)
- Stateless HMAC session tokens with sliding inactivity expiry
- Storage- and transport-agnostic through adapter protocols
"""

__version__ = "0.1.0"

from passgate.auth import Auth, AuthErrorCode, AuthResult, ChallengeStore
from passgate.core.config import AuthConfig, ConfigurationError, PassgateSettings

__all__ = [
    "Auth",
    "AuthConfig",
    "AuthErrorCode",
    "AuthResult",
    "ChallengeStore",
    "ConfigurationError",
    "PassgateSettings",
    "__version__",
]
