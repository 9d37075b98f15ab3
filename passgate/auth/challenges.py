"""
WebAuthn challenge store.

Pending registration/authentication challenges, keyed by the challenge
value. One store belongs to one ``Auth`` instance; it is process-local and
does not survive restarts. Expired entries are dropped on access and by an
optional background sweep.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class ChallengePurpose(str, Enum):
    REGISTRATION = "registration"
    AUTHENTICATION = "authentication"


@dataclass
class ChallengeRecord:
    """A challenge issued to a client and not yet consumed."""

    challenge: str
    purpose: ChallengePurpose
    expires_at: float  # unix seconds
    user_id: Optional[str] = None  # only bound for registration

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) > self.expires_at


def challenge_fingerprint(challenge: str) -> str:
    """Short, non-reversible identifier for logs."""
    return hashlib.sha256(challenge.encode()).hexdigest()[:16]


class ChallengeStore:
    """
    Lock-protected mapping of pending challenges.

    Every lookup consumes: ``consume()`` removes the record whether or not it
    is still valid, so a challenge can be presented at most once.
    """

    def __init__(self, sweep_interval: float = 60.0) -> None:
        self.sweep_interval = sweep_interval
        self._records: Dict[str, ChallengeRecord] = {}
        self._lock = asyncio.Lock()

        # Cleanup
        self._sweep_task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()

    async def initialize(self) -> None:
        """Start the background sweep."""
        if self._sweep_task is not None:
            return
        self._shutdown_event.clear()
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def shutdown(self) -> None:
        """Stop the background sweep."""
        self._shutdown_event.set()

        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

    async def issue(
        self,
        challenge: str,
        purpose: ChallengePurpose,
        ttl: float,
        user_id: Optional[str] = None,
    ) -> ChallengeRecord:
        now = time.time()
        record = ChallengeRecord(
            challenge=challenge,
            purpose=purpose,
            expires_at=now + ttl,
            user_id=user_id,
        )
        async with self._lock:
            # Access-time sweep
            self._drop_expired(now)
            self._records[challenge] = record
        return record

    async def consume(
        self,
        challenge: str,
        purpose: ChallengePurpose,
    ) -> Optional[ChallengeRecord]:
        """Remove and return a live challenge issued for ``purpose``."""
        async with self._lock:
            record = self._records.pop(challenge, None)

        if record is None:
            return None
        if record.is_expired():
            logger.info("Challenge expired", challenge_hash=challenge_fingerprint(challenge))
            return None
        if record.purpose != purpose:
            logger.warning(
                "Challenge presented for wrong ceremony",
                challenge_hash=challenge_fingerprint(challenge),
                issued_for=record.purpose.value,
                presented_for=purpose.value,
            )
            return None
        return record

    async def discard_for_user(self, user_id: str) -> int:
        """Drop every pending challenge bound to ``user_id``."""
        async with self._lock:
            doomed = [c for c, r in self._records.items() if r.user_id == user_id]
            for challenge in doomed:
                del self._records[challenge]
        return len(doomed)

    async def sweep(self) -> int:
        """Remove expired challenges. Returns how many were removed."""
        async with self._lock:
            removed = self._drop_expired(time.time())
        if removed:
            logger.debug("Swept expired challenges", count=removed)
        return removed

    def _drop_expired(self, now: float) -> int:
        expired = [c for c, r in self._records.items() if r.is_expired(now)]
        for challenge in expired:
            del self._records[challenge]
        return len(expired)

    async def _sweep_loop(self) -> None:
        """Periodically drop expired challenges."""
        while not self._shutdown_event.is_set():
            try:
                await asyncio.sleep(self.sweep_interval)
                await self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Challenge sweep error", error=str(e))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, challenge: object) -> bool:
        return challenge in self._records
