"""
Auth instances wired to in-memory adapters.
"""

from passgate.adapters.memory import MemoryStorage
from passgate.adapters.transports import MemorySessionTransport
from passgate.auth.challenges import ChallengeStore
from passgate.auth.service import Auth
from passgate.core.config import AuthConfig, SessionSettings, WebAuthnSettings
from passgate.tokens.registration import HmacRegistrationCodec
from passgate.tokens.session import HmacSessionCodec

TEST_SECRET = "test_secret_key_for_testing_only"
RP_ID = "localhost"
ORIGIN = "https://localhost"


class RecordingOtpTransport:
    """OTP transport that keeps every code it was asked to send."""

    def __init__(self, ttl: float = 600) -> None:
        self.ttl = ttl
        self.sent = []

    async def send(self, identifier: str, otp: str) -> None:
        self.sent.append((identifier, otp))

    def last_code(self, identifier: str) -> str:
        return [otp for ident, otp in self.sent if ident == identifier][-1]


def build_auth(
    storage=None,
    session_ttl=30 * 24 * 60 * 60,
    token_ttl=600,
    otp_ttl=600,
    session_codec=None,
    require_user_verification=False,
):
    """Auth over fresh in-memory adapters; anything passed in is shared."""
    config = AuthConfig(
        storage=storage or MemoryStorage(),
        session_codec=session_codec or HmacSessionCodec(TEST_SECRET, token_ttl=token_ttl),
        registration_codec=HmacRegistrationCodec(TEST_SECRET),
        otp_transport=RecordingOtpTransport(ttl=otp_ttl),
        session_transport=MemorySessionTransport(),
        webauthn=WebAuthnSettings(
            rp_id=RP_ID,
            rp_name="passgate tests",
            origin=ORIGIN,
            require_user_verification=require_user_verification,
        ),
        session=SessionSettings(ttl=session_ttl, token_ttl=token_ttl),
    )
    return Auth(config, challenges=ChallengeStore())
