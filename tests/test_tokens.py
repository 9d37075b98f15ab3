"""
passgate Token Codec Tests
"""

import time

import pytest

from passgate.codec.crypto import base64url_encode, encode_payload, hmac_sign
from passgate.tokens import (
    HmacCodec,
    HmacRegistrationCodec,
    HmacSessionCodec,
    OpaqueSessionCodec,
    RegistrationPayload,
    SessionPayload,
    TokenSigningError,
)

SECRET = "test_secret"


# ============================================================================
# Generic HMAC Codec
# ============================================================================


class TestHmacCodec:
    """Tests for the generic signed-token codec."""

    def test_encode_decode(self):
        """Test a payload survives encoding and carries its expiry."""
        codec = HmacCodec(SECRET, ttl=60)
        before = time.time()
        token = codec.encode({"userId": "u1", "role": "admin"})

        decoded = codec.decode(token)
        assert decoded is not None
        assert decoded.payload == {"userId": "u1", "role": "admin"}
        assert decoded.expired is False
        assert before + 60 <= decoded.exp <= time.time() + 60

    def test_token_shape(self):
        """Test tokens are two base64url parts."""
        token = HmacCodec(SECRET, ttl=60).encode({"a": 1})
        payload, signature = token.split(".")
        assert payload and signature
        assert "=" not in token

    def test_expired_token_still_decodes(self):
        """Test an authentic but expired token reports expired=True."""
        codec = HmacCodec(SECRET, ttl=-10)
        decoded = codec.decode(codec.encode({"a": 1}))
        assert decoded is not None
        assert decoded.expired is True

    def test_explicit_expiry(self):
        """Test expires_in and expires_at override the default ttl."""
        codec = HmacCodec(SECRET, ttl=60)
        assert codec.decode(codec.encode({}, expires_at=1234.5)).exp == 1234.5

        decoded = codec.decode(codec.encode({}, expires_in=3600))
        assert decoded.exp > time.time() + 3000

    def test_expiry_arguments_are_exclusive(self):
        """Test passing both expiry forms is an error."""
        with pytest.raises(ValueError):
            HmacCodec(SECRET, ttl=60).encode({}, expires_in=1, expires_at=2)

    def test_no_expiry_available(self):
        """Test a codec without ttl needs an explicit expiry."""
        with pytest.raises(ValueError):
            HmacCodec(SECRET).encode({"a": 1})

    def test_reserved_key(self):
        """Test the expiry field cannot be smuggled in the payload."""
        with pytest.raises(ValueError):
            HmacCodec(SECRET, ttl=60).encode({"exp": 1})

    def test_custom_exp_field(self):
        """Test the expiry key is configurable."""
        codec = HmacCodec(SECRET, ttl=60, exp_field="tokenExp")
        token = codec.encode({"exp": "not reserved here"})
        decoded = codec.decode(token)
        assert decoded.payload == {"exp": "not reserved here"}

    def test_empty_secret_cannot_sign(self):
        """Test signing with an empty secret raises."""
        with pytest.raises(TokenSigningError):
            HmacCodec("", ttl=60).encode({"a": 1})

    def test_tampered_payload(self):
        """Test a modified payload fails signature verification."""
        codec = HmacCodec(SECRET, ttl=60)
        _, signature = codec.encode({"userId": "u1"}).split(".")
        forged = encode_payload({"userId": "admin", "exp": time.time() + 60})
        assert codec.decode(f"{forged}.{signature}") is None

    def test_wrong_secret(self):
        """Test a token signed with another secret is rejected."""
        token = HmacCodec("other", ttl=60).encode({"a": 1})
        assert HmacCodec(SECRET, ttl=60).decode(token) is None

    def test_malformed_tokens(self):
        """Test structurally invalid tokens decode to None."""
        codec = HmacCodec(SECRET, ttl=60)
        token = codec.encode({"a": 1})
        for bad in ("", "abc", ".", "a.", ".b", f"{token}.extra", None, 42):
            assert codec.decode(bad) is None

    def test_missing_or_invalid_expiry(self):
        """Test a signed payload without a numeric expiry is rejected."""
        codec = HmacCodec(SECRET, ttl=60)
        for payload in ({"a": 1}, {"exp": "soon"}, {"exp": True}, {"exp": None}):
            encoded = encode_payload(payload)
            assert codec.decode(f"{encoded}.{hmac_sign(encoded, SECRET)}") is None

    def test_non_object_payload(self):
        """Test a signed JSON array is rejected."""
        encoded = base64url_encode(b"[1,2]")
        codec = HmacCodec(SECRET, ttl=60)
        assert codec.decode(f"{encoded}.{hmac_sign(encoded, SECRET)}") is None


# ============================================================================
# Session Codec
# ============================================================================


class TestHmacSessionCodec:
    """Tests for two-tier session tokens."""

    @pytest.mark.asyncio
    async def test_encode_decode(self):
        """Test session fields survive encoding."""
        codec = HmacSessionCodec(SECRET, token_ttl=600)
        session_exp = time.time() + 3600
        token = await codec.encode(SessionPayload("sid", "user_1", session_exp))

        decoded = await codec.decode(token)
        assert decoded.session_id == "sid"
        assert decoded.user_id == "user_1"
        assert decoded.session_exp == pytest.approx(session_exp)
        assert decoded.expired is False
        assert decoded.token_exp > time.time()

    @pytest.mark.asyncio
    async def test_forever_session(self):
        """Test a null sessionExp round trips as None."""
        codec = HmacSessionCodec(SECRET)
        decoded = await codec.decode(await codec.encode(SessionPayload("sid", "u", None)))
        assert decoded.session_exp is None
        assert decoded.session_expired(time.time() + 10 ** 9) is False

    @pytest.mark.asyncio
    async def test_token_exp_preserved(self):
        """Test re-encoding with token_exp keeps the original window."""
        codec = HmacSessionCodec(SECRET, token_ttl=600)
        first = await codec.decode(await codec.encode(SessionPayload("sid", "u", None)))

        second = await codec.decode(
            await codec.encode(SessionPayload("sid", "u", time.time() + 50), token_exp=first.token_exp)
        )
        assert second.token_exp == first.token_exp

    @pytest.mark.asyncio
    async def test_expired_token_exp(self):
        """Test tokenExp drives expired, independent of sessionExp."""
        codec = HmacSessionCodec(SECRET, token_ttl=-1)
        decoded = await codec.decode(
            await codec.encode(SessionPayload("sid", "u", time.time() + 3600))
        )
        assert decoded.expired is True
        assert decoded.session_expired(time.time()) is False

    @pytest.mark.asyncio
    async def test_session_exp_is_not_checked_by_codec(self):
        """Test a past sessionExp still decodes; the caller decides."""
        codec = HmacSessionCodec(SECRET)
        decoded = await codec.decode(await codec.encode(SessionPayload("sid", "u", time.time() - 5)))
        assert decoded.expired is False
        assert decoded.session_expired(time.time()) is True

    @pytest.mark.asyncio
    async def test_wire_field_names(self):
        """Test the payload uses sessionId/sessionExp/userId/tokenExp."""
        codec = HmacSessionCodec(SECRET)
        token = await codec.encode(SessionPayload("sid", "u", None))
        inner = HmacCodec(SECRET, exp_field="tokenExp").decode(token)
        assert inner.payload == {"sessionId": "sid", "sessionExp": None, "userId": "u"}

    @pytest.mark.asyncio
    async def test_wrong_field_types_rejected(self):
        """Test authentic tokens with bad field types are rejected."""
        inner = HmacCodec(SECRET, ttl=60, exp_field="tokenExp")
        codec = HmacSessionCodec(SECRET)

        assert await codec.decode(inner.encode({"sessionId": 1, "userId": "u", "sessionExp": None})) is None
        assert await codec.decode(inner.encode({"sessionId": "s", "sessionExp": None})) is None
        assert await codec.decode(inner.encode({"sessionId": "s", "userId": "u", "sessionExp": "x"})) is None

    @pytest.mark.asyncio
    async def test_tampered(self):
        """Test a forged session token is rejected."""
        codec = HmacSessionCodec(SECRET)
        token = await codec.encode(SessionPayload("sid", "u", None))
        assert await HmacSessionCodec("other").decode(token) is None
        payload, signature = token.split(".")
        assert await codec.decode(f"{payload}x.{signature}") is None


# ============================================================================
# Registration Codec
# ============================================================================


class TestHmacRegistrationCodec:
    """Tests for registration tokens."""

    @pytest.mark.asyncio
    async def test_encode_decode(self):
        """Test user id and identifier survive encoding."""
        codec = HmacRegistrationCodec(SECRET, ttl=300)
        decoded = await codec.decode(await codec.encode(RegistrationPayload("user_1", "a@example.com")))

        assert decoded.user_id == "user_1"
        assert decoded.identifier == "a@example.com"
        assert decoded.expired is False

    @pytest.mark.asyncio
    async def test_expired(self):
        """Test an expired registration token is flagged."""
        codec = HmacRegistrationCodec(SECRET, ttl=-1)
        decoded = await codec.decode(await codec.encode(RegistrationPayload("u", "i")))
        assert decoded.expired is True

    @pytest.mark.asyncio
    async def test_session_token_is_not_a_registration_token(self):
        """Test tokens from the session codec do not decode here."""
        session_token = await HmacSessionCodec(SECRET).encode(SessionPayload("sid", "u", None))
        assert await HmacRegistrationCodec(SECRET).decode(session_token) is None


# ============================================================================
# Opaque Codec
# ============================================================================


class TestOpaqueSessionCodec:
    """Tests for the session-id-as-token codec."""

    @pytest.mark.asyncio
    async def test_token_is_session_id(self):
        """Test the token is the bare session id."""
        codec = OpaqueSessionCodec()
        assert await codec.encode(SessionPayload("sid_123", "u", None)) == "sid_123"

    @pytest.mark.asyncio
    async def test_always_expired(self):
        """Test decode always forces a storage lookup."""
        decoded = await OpaqueSessionCodec().decode("sid_123")
        assert decoded.session_id == "sid_123"
        assert decoded.expired is True
        assert decoded.session_exp is None

    @pytest.mark.asyncio
    async def test_empty_token(self):
        assert await OpaqueSessionCodec().decode("") is None
