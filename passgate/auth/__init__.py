"""
passgate auth service

The core state machine plus its result types and challenge store.
"""

from passgate.auth.challenges import (
    ChallengePurpose,
    ChallengeRecord,
    ChallengeStore,
)
from passgate.auth.results import AuthErrorCode, AuthResult
from passgate.auth.service import (
    Auth,
    generate_challenge,
    generate_otp,
    generate_session_id,
)

__all__ = [
    "Auth",
    "AuthErrorCode",
    "AuthResult",
    "ChallengePurpose",
    "ChallengeRecord",
    "ChallengeStore",
    "generate_challenge",
    "generate_otp",
    "generate_session_id",
]
