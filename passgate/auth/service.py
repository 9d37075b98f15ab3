"""
passgate Authentication Service

The core auth state machine: OTP issuance and verification, registration
tokens, passkey registration/authentication ceremonies, and the session
lifecycle (creation, sliding refresh, revocation).

Sessions move Anonymous -> Authenticated on a verified OTP (followed by an
explicit ``create_session``) or a verified passkey, and back to Anonymous on
sign-out, inactivity timeout or server-side revocation.

Session validity is two-tier:
- while the token's own window (token_exp) is open, the token is trusted
  without touching storage and only its inactivity deadline slides forward
- once token_exp passes, storage is consulted; a missing record means the
  session was revoked, otherwise a brand-new token is issued
"""

from __future__ import annotations

import secrets
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

from passgate.adapters.base import OtpRecord, SessionRecord, SessionTransport
from passgate.auth.challenges import (
    ChallengePurpose,
    ChallengeStore,
    challenge_fingerprint,
)
from passgate.auth.results import AuthErrorCode, AuthResult
from passgate.codec.crypto import base64url_encode
from passgate.core.config import AuthConfig
from passgate.tokens.base import RegistrationPayload, SessionPayload
from passgate.webauthn.authdata import decode_client_data
from passgate.webauthn.errors import WebAuthnError
from passgate.webauthn.types import (
    AuthenticationCredential,
    AuthenticationOptions,
    CredentialRecord,
    RegistrationCredential,
    RegistrationOptions,
    StoredCredential,
)
from passgate.webauthn.verify import (
    verify_authentication_credential,
    verify_registration_credential,
)

logger = structlog.get_logger(__name__)

CHALLENGE_BYTES = 32
SESSION_ID_BYTES = 32


def generate_otp(length: int = 6) -> str:
    """Uniform random numeric code from the system CSPRNG."""
    return str(secrets.randbelow(10 ** length)).zfill(length)


def generate_session_id() -> str:
    return secrets.token_hex(SESSION_ID_BYTES)


def generate_challenge() -> str:
    return base64url_encode(secrets.token_bytes(CHALLENGE_BYTES))


def _to_datetime(timestamp: Optional[float]) -> Optional[datetime]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class Auth:
    """
    OTP and passkey authentication with stateless session tokens.

    Storage, transports and codecs come from ``AuthConfig``; the challenge
    store is owned by this instance unless one is injected.
    """

    def __init__(
        self,
        config: AuthConfig,
        challenges: Optional[ChallengeStore] = None,
    ) -> None:
        self.config = config
        self.storage = config.storage
        self.session_codec = config.session_codec
        self.registration_codec = config.registration_codec
        self.otp_transport = config.otp_transport
        self.session_transport = config.session_transport
        self.webauthn = config.webauthn
        self.challenges = challenges if challenges is not None else ChallengeStore()
        self._logger = logger.bind(rp_id=config.webauthn.rp_id)

    async def initialize(self) -> None:
        """Start background housekeeping (challenge sweeping)."""
        await self.challenges.initialize()

    async def shutdown(self) -> None:
        await self.challenges.shutdown()

    def with_session_transport(self, transport: SessionTransport) -> "Auth":
        """
        A view of this instance bound to a per-request session transport.

        Storage, codecs and the challenge store are shared.
        """
        return Auth(replace(self.config, session_transport=transport), challenges=self.challenges)

    def _fail(
        self,
        error: AuthErrorCode,
        exc: Optional[BaseException] = None,
        **context: Any,
    ) -> AuthResult:
        if exc is not None and self.config.debug:
            self._logger.debug("Auth failure detail", error=error.value, detail=str(exc), **context)
        self._logger.warning("Auth operation failed", error=error.value, **context)
        return AuthResult.fail(error)

    def _new_session_exp(self, now: float) -> Optional[float]:
        ttl = self.config.session.ttl
        return None if ttl is None else now + ttl

    # =========================================================================
    # OTP
    # =========================================================================

    async def request_otp(self, identifier: str) -> AuthResult:
        """
        Generate an OTP for ``identifier``, persist it and send it.

        Delivery failures are adapter errors and propagate.
        """
        otp = generate_otp(self.config.otp.length)
        expires_at = datetime.fromtimestamp(
            time.time() + self.otp_transport.ttl, tz=timezone.utc
        )

        await self.storage.otp.store(OtpRecord(identifier=identifier, otp=otp, expires_at=expires_at))
        await self.otp_transport.send(identifier, otp)

        self._logger.info("OTP requested", identifier=identifier)
        return AuthResult.ok()

    async def verify_otp(self, identifier: str, otp: str) -> AuthResult:
        """
        Check (and consume) an OTP.

        Does not create a session: the application decides how to provision
        the user, then calls ``create_session`` or ``create_registration_token``.
        """
        if not await self.storage.otp.verify(identifier, otp):
            return self._fail(AuthErrorCode.INVALID_OTP, identifier=identifier)

        self._logger.info("OTP verified", identifier=identifier)
        return AuthResult.ok()

    # =========================================================================
    # Registration tokens
    # =========================================================================

    async def create_registration_token(self, user_id: str, identifier: str) -> AuthResult:
        """Issue a short-lived token authorizing one passkey registration."""
        token = await self.registration_codec.encode(
            RegistrationPayload(user_id=user_id, identifier=identifier)
        )
        return AuthResult.ok(registrationToken=token)

    async def validate_registration_token(self, token: str) -> AuthResult:
        decoded = await self.registration_codec.decode(token)
        if decoded is None or decoded.expired:
            return self._fail(AuthErrorCode.INVALID_TOKEN)
        return AuthResult.ok(userId=decoded.user_id, identifier=decoded.identifier)

    # =========================================================================
    # Passkey registration
    # =========================================================================

    async def generate_registration_options(self, registration_token: str) -> AuthResult:
        """Creation options for navigator.credentials.create()."""
        decoded = await self.registration_codec.decode(registration_token)
        if decoded is None or decoded.expired:
            return self._fail(AuthErrorCode.INVALID_TOKEN)

        existing = await self.storage.credential.get(decoded.user_id)

        challenge = generate_challenge()
        await self.challenges.issue(
            challenge,
            ChallengePurpose.REGISTRATION,
            ttl=self.webauthn.challenge_ttl,
            user_id=decoded.user_id,
        )

        options = RegistrationOptions(
            challenge=challenge,
            rp_id=self.webauthn.rp_id,
            rp_name=self.webauthn.rp_name,
            user_id=base64url_encode(decoded.user_id.encode("utf-8")),
            user_name=decoded.identifier,
            user_display_name=decoded.identifier,
            timeout=self.webauthn.timeout_ms,
            exclude_credentials=[cred.id for cred in existing],
            resident_key=self.webauthn.resident_key,
            user_verification=self.webauthn.user_verification,
        )

        self._logger.info(
            "Generated registration options",
            user_id=decoded.user_id,
            excluded=len(existing),
            challenge_hash=challenge_fingerprint(challenge),
        )
        return AuthResult.ok(options=options.to_json())

    async def verify_registration(
        self,
        registration_token: str,
        credential: RegistrationCredential,
    ) -> AuthResult:
        """Verify a new passkey, store it, and sign the user in."""
        decoded = await self.registration_codec.decode(registration_token)
        if decoded is None or decoded.expired:
            return self._fail(AuthErrorCode.INVALID_TOKEN)

        user_id = decoded.user_id

        try:
            client_data, _ = decode_client_data(credential.client_data_json)
        except WebAuthnError as e:
            await self.challenges.discard_for_user(user_id)
            return self._fail(AuthErrorCode.VERIFICATION_FAILED, e, user_id=user_id)

        stored = await self.challenges.consume(client_data.challenge, ChallengePurpose.REGISTRATION)
        if stored is None:
            # Unknown challenge: nothing issued for this user may be replayed later
            await self.challenges.discard_for_user(user_id)
            return self._fail(AuthErrorCode.CHALLENGE_EXPIRED, user_id=user_id)

        if stored.user_id != user_id:
            return self._fail(AuthErrorCode.USER_MISMATCH, user_id=user_id)

        try:
            verified = verify_registration_credential(
                credential,
                expected_challenge=stored.challenge,
                expected_origin=self.webauthn.expected_origin,
                expected_rp_id=self.webauthn.rp_id,
                require_user_verification=self.webauthn.require_user_verification,
            )
        except WebAuthnError as e:
            return self._fail(
                AuthErrorCode.VERIFICATION_FAILED,
                e,
                user_id=user_id,
                reason=e.reason.value,
            )

        await self.storage.credential.store(
            CredentialRecord(
                user_id=user_id,
                credential=StoredCredential(
                    id=verified.credential_id,
                    public_key=verified.public_key,
                    counter=verified.counter,
                    transports=verified.transports,
                ),
            )
        )

        self._logger.info(
            "Passkey registered",
            user_id=user_id,
            credential_id=verified.credential_id,
        )
        return await self.create_session(user_id)

    # =========================================================================
    # Passkey authentication
    # =========================================================================

    async def generate_authentication_options(self) -> AuthResult:
        """Request options for a discoverable-credential sign-in."""
        challenge = generate_challenge()
        await self.challenges.issue(
            challenge,
            ChallengePurpose.AUTHENTICATION,
            ttl=self.webauthn.challenge_ttl,
        )

        options = AuthenticationOptions(
            challenge=challenge,
            rp_id=self.webauthn.rp_id,
            timeout=self.webauthn.timeout_ms,
            user_verification=self.webauthn.user_verification,
        )

        self._logger.info(
            "Generated authentication options",
            challenge_hash=challenge_fingerprint(challenge),
        )
        return AuthResult.ok(options=options.to_json())

    async def verify_authentication(self, credential: AuthenticationCredential) -> AuthResult:
        """Verify a passkey assertion, advance its counter, and sign the user in."""
        record = await self.storage.credential.get_by_id(credential.id)
        if record is None:
            return self._fail(AuthErrorCode.CREDENTIAL_NOT_FOUND, credential_id=credential.id)

        try:
            client_data, _ = decode_client_data(credential.client_data_json)
        except WebAuthnError as e:
            return self._fail(AuthErrorCode.VERIFICATION_FAILED, e, credential_id=credential.id)

        stored = await self.challenges.consume(client_data.challenge, ChallengePurpose.AUTHENTICATION)
        if stored is None:
            return self._fail(AuthErrorCode.CHALLENGE_EXPIRED, credential_id=credential.id)

        try:
            verified = verify_authentication_credential(
                credential,
                record.credential,
                expected_challenge=stored.challenge,
                expected_origin=self.webauthn.expected_origin,
                expected_rp_id=self.webauthn.rp_id,
                require_user_verification=self.webauthn.require_user_verification,
            )
        except WebAuthnError as e:
            return self._fail(
                AuthErrorCode.VERIFICATION_FAILED,
                e,
                credential_id=credential.id,
                reason=e.reason.value,
            )

        await self.storage.credential.update_counter(credential.id, verified.counter)

        self._logger.info(
            "Passkey authentication successful",
            user_id=record.user_id,
            credential_id=credential.id,
            sign_count=verified.counter,
        )
        return await self.create_session(record.user_id)

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def create_session(self, user_id: str) -> AuthResult:
        """Persist a new session and hand its token to the transport."""
        session_id = generate_session_id()
        session_exp = self._new_session_exp(time.time())

        await self.storage.session.store(
            SessionRecord(
                session_id=session_id,
                user_id=user_id,
                expires_at=_to_datetime(session_exp),
            )
        )

        token = await self.session_codec.encode(
            SessionPayload(session_id=session_id, user_id=user_id, session_exp=session_exp)
        )
        response_token = self.session_transport.set(token)

        self._logger.info(
            "Session created",
            user_id=user_id,
            forever=session_exp is None,
        )
        return AuthResult.ok(session={"token": response_token, "userId": user_id})

    async def get_session(self) -> Optional[Dict[str, str]]:
        """
        Resolve the current session, refreshing its token.

        Returns ``{"userId": ...}`` or None when unauthenticated.
        """
        token = self.session_transport.get()
        if not token:
            return None

        decoded = await self.session_codec.decode(token)
        if decoded is None:
            return None

        now = time.time()

        # Inactivity timeout applies even to an otherwise valid token
        if decoded.session_expired(now):
            self._logger.info("Session expired from inactivity", session_user=decoded.user_id)
            return None

        if not decoded.expired:
            # Token window still open: slide sessionExp, keep tokenExp
            fresh = await self.session_codec.encode(
                SessionPayload(
                    session_id=decoded.session_id,
                    user_id=decoded.user_id,
                    session_exp=self._new_session_exp(now),
                ),
                token_exp=decoded.token_exp,
            )
            self.session_transport.set(fresh)
            return {"userId": decoded.user_id}

        # Token window closed: storage decides whether the session survives
        record = await self.storage.session.get(decoded.session_id)
        if record is None:
            self._logger.info("Session revoked", session_id_prefix=decoded.session_id[:8])
            return None

        # A signed sessionExp was already checked above; the stored expiry
        # only governs tokens that carry none (opaque ids)
        if (
            decoded.session_exp is None
            and record.expires_at is not None
            and record.expires_at < datetime.now(timezone.utc)
        ):
            await self.storage.session.delete(decoded.session_id)
            self._logger.info("Stored session expired", user_id=record.user_id)
            return None

        new_exp = self._new_session_exp(now)
        if new_exp is not None:
            await self.storage.session.store(
                SessionRecord(
                    session_id=decoded.session_id,
                    user_id=record.user_id,
                    expires_at=_to_datetime(new_exp),
                )
            )

        fresh = await self.session_codec.encode(
            SessionPayload(
                session_id=decoded.session_id,
                user_id=record.user_id,
                session_exp=new_exp,
            )
        )
        self.session_transport.set(fresh)
        return {"userId": record.user_id}

    async def sign_out(self) -> None:
        """Delete the current session and clear the transport token."""
        token = self.session_transport.get()

        if token:
            decoded = await self.session_codec.decode(token)
            if decoded is not None:
                await self.storage.session.delete(decoded.session_id)
                self._logger.info("Signed out", user_id=decoded.user_id or None)

        self.session_transport.clear()
