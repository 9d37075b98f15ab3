"""
passgate Challenge Store Tests
"""

import asyncio
import time

import pytest

from passgate.auth.challenges import (
    ChallengePurpose,
    ChallengeStore,
    challenge_fingerprint,
)


@pytest.fixture
async def challenge_store():
    """Create and initialize a challenge store."""
    store = ChallengeStore(sweep_interval=0.01)
    await store.initialize()
    yield store
    await store.shutdown()


class TestChallengeStore:
    """Tests for issuing and consuming challenges."""

    @pytest.mark.asyncio
    async def test_issue_and_consume(self, challenge_store):
        """Test a live challenge is returned once."""
        await challenge_store.issue("c1", ChallengePurpose.REGISTRATION, ttl=60, user_id="u1")

        record = await challenge_store.consume("c1", ChallengePurpose.REGISTRATION)
        assert record is not None
        assert record.user_id == "u1"

        assert await challenge_store.consume("c1", ChallengePurpose.REGISTRATION) is None

    @pytest.mark.asyncio
    async def test_unknown_challenge(self, challenge_store):
        """Test consuming a never-issued challenge."""
        assert await challenge_store.consume("nope", ChallengePurpose.AUTHENTICATION) is None

    @pytest.mark.asyncio
    async def test_expired_challenge_is_removed(self):
        """Test an expired challenge is not returned and is deleted."""
        store = ChallengeStore()
        await store.issue("c1", ChallengePurpose.AUTHENTICATION, ttl=-1)

        assert await store.consume("c1", ChallengePurpose.AUTHENTICATION) is None
        assert "c1" not in store

    @pytest.mark.asyncio
    async def test_wrong_purpose_consumes(self):
        """Test a challenge presented for the other ceremony is burned."""
        store = ChallengeStore()
        await store.issue("c1", ChallengePurpose.REGISTRATION, ttl=60, user_id="u1")

        assert await store.consume("c1", ChallengePurpose.AUTHENTICATION) is None
        assert await store.consume("c1", ChallengePurpose.REGISTRATION) is None

    @pytest.mark.asyncio
    async def test_discard_for_user(self):
        """Test dropping all challenges bound to a user."""
        store = ChallengeStore()
        await store.issue("c1", ChallengePurpose.REGISTRATION, ttl=60, user_id="u1")
        await store.issue("c2", ChallengePurpose.REGISTRATION, ttl=60, user_id="u1")
        await store.issue("c3", ChallengePurpose.REGISTRATION, ttl=60, user_id="u2")
        await store.issue("c4", ChallengePurpose.AUTHENTICATION, ttl=60)

        assert await store.discard_for_user("u1") == 2
        assert len(store) == 2
        assert "c3" in store and "c4" in store

    @pytest.mark.asyncio
    async def test_sweep(self):
        """Test sweep removes only expired entries."""
        store = ChallengeStore()
        await store.issue("old", ChallengePurpose.AUTHENTICATION, ttl=60)
        await store.issue("new", ChallengePurpose.AUTHENTICATION, ttl=60)
        store._records["old"].expires_at = time.time() - 1

        assert await store.sweep() == 1
        assert "old" not in store
        assert "new" in store

    @pytest.mark.asyncio
    async def test_issue_drops_expired_without_background_task(self):
        """Test abandoned challenges are pruned on issue when no sweep task runs."""
        store = ChallengeStore()
        for i in range(50):
            await store.issue(f"abandoned-{i}", ChallengePurpose.AUTHENTICATION, ttl=-1)

        assert len(store) == 1

        await store.issue("live", ChallengePurpose.AUTHENTICATION, ttl=60)
        assert len(store) == 1
        assert "live" in store

    @pytest.mark.asyncio
    async def test_background_sweep(self, challenge_store):
        """Test the sweep task removes expired challenges on its own."""
        await challenge_store.issue("old", ChallengePurpose.AUTHENTICATION, ttl=-1)

        for _ in range(100):
            if "old" not in challenge_store:
                break
            await asyncio.sleep(0.01)

        assert "old" not in challenge_store

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self):
        """Test shutdown without initialize and twice in a row."""
        store = ChallengeStore()
        await store.shutdown()
        await store.initialize()
        await store.shutdown()
        await store.shutdown()


def test_fingerprint_is_short_and_stable():
    """Test challenge fingerprints hide the challenge value."""
    fp = challenge_fingerprint("some-challenge")
    assert fp == challenge_fingerprint("some-challenge")
    assert len(fp) == 16
    assert "some-challenge" not in fp
