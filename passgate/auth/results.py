"""
Tagged results for auth operations.

Auth operations report outcome failures as values, never as exceptions, so
an HTTP or RPC layer can serialize every failure the same way. Adapter
exceptions are not results; they propagate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class AuthErrorCode(str, Enum):
    """Error codes for auth failures."""
    INVALID_OTP = "invalid_otp"
    INVALID_TOKEN = "invalid_token"
    CHALLENGE_EXPIRED = "challenge_expired"
    USER_MISMATCH = "user_mismatch"
    CREDENTIAL_NOT_FOUND = "credential_not_found"
    VERIFICATION_FAILED = "verification_failed"
    INVALID_REQUEST = "invalid_request"
    INTERNAL_ERROR = "internal_error"


@dataclass
class AuthResult:
    """Outcome of an auth operation."""

    success: bool = False
    error: Optional[AuthErrorCode] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "AuthResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: AuthErrorCode) -> "AuthResult":
        return cls(success=False, error=error)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def to_json(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, **self.data}
        return {"success": False, "error": self.error.value if self.error else None}
