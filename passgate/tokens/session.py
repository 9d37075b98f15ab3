"""
HMAC session codec.

Wire format:
  base64url({"sessionId", "sessionExp", "userId", "tokenExp"}).base64url(sig)

Two independent expiries:
- tokenExp: short revocation-check window. Drives ``expired``; once it
  passes, the auth service consults storage before trusting the session.
- sessionExp: sliding inactivity deadline, ``null`` for forever sessions.
  Never interpreted here; the auth service checks it.
"""

from __future__ import annotations

from typing import Optional

from passgate.tokens.base import DecodedSession, SessionPayload
from passgate.tokens.hmac_codec import HmacCodec

DEFAULT_TOKEN_TTL = 600  # seconds


class HmacSessionCodec:
    """Stateless session tokens; valid tokens need no storage lookup."""

    def __init__(self, secret: str, token_ttl: float = DEFAULT_TOKEN_TTL) -> None:
        self.token_ttl = token_ttl
        self._codec = HmacCodec(secret, ttl=token_ttl, exp_field="tokenExp")

    async def encode(
        self,
        payload: SessionPayload,
        token_exp: Optional[float] = None,
    ) -> str:
        return self._codec.encode(
            {
                "sessionId": payload.session_id,
                "sessionExp": payload.session_exp,
                "userId": payload.user_id,
            },
            expires_at=token_exp,
        )

    async def decode(self, token: str) -> Optional[DecodedSession]:
        decoded = self._codec.decode(token)
        if decoded is None:
            return None

        data = decoded.payload
        session_id = data.get("sessionId")
        user_id = data.get("userId")
        session_exp = data.get("sessionExp")
        if not isinstance(session_id, str) or not isinstance(user_id, str):
            return None
        if session_exp is not None and (
            isinstance(session_exp, bool) or not isinstance(session_exp, (int, float))
        ):
            return None

        return DecodedSession(
            session_id=session_id,
            user_id=user_id,
            session_exp=float(session_exp) if session_exp is not None else None,
            token_exp=decoded.exp,
            expired=decoded.expired,
        )
