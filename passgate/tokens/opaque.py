"""
Opaque session codec.

The token is the session id itself. Nothing can be read from it, so every
decode reports an expired token and the auth service always consults
storage: instant revocation at the cost of a lookup per request.
"""

from __future__ import annotations

from typing import Optional

from passgate.tokens.base import DecodedSession, SessionPayload


class OpaqueSessionCodec:
    """Session tokens that are plain session ids."""

    async def encode(
        self,
        payload: SessionPayload,
        token_exp: Optional[float] = None,
    ) -> str:
        return payload.session_id

    async def decode(self, token: str) -> Optional[DecodedSession]:
        if not token:
            return None
        # user_id and session_exp come from the storage record
        return DecodedSession(
            session_id=token,
            user_id="",
            session_exp=None,
            token_exp=0.0,
            expired=True,
        )
