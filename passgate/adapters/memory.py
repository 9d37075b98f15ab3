"""
In-memory storage adapter.

Process-local dictionaries guarded by an asyncio lock. Intended for tests
and local development; state is lost on restart and not shared between
processes.
"""

from __future__ import annotations

import asyncio
import hmac
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog

from passgate.adapters.base import OtpRecord, SessionRecord
from passgate.webauthn.types import CredentialRecord, StoredCredential

logger = structlog.get_logger(__name__)


class MemoryOtpStore:

    def __init__(self, lock: asyncio.Lock) -> None:
        self.records: Dict[str, OtpRecord] = {}
        self._lock = lock

    async def store(self, record: OtpRecord) -> None:
        async with self._lock:
            self.records[record.identifier] = record

    async def verify(self, identifier: str, otp: str) -> bool:
        async with self._lock:
            record = self.records.get(identifier)
            if record is None:
                return False

            if record.expires_at < datetime.now(timezone.utc):
                del self.records[identifier]
                return False

            if not hmac.compare_digest(record.otp.encode(), otp.encode()):
                return False

            # One-time use
            del self.records[identifier]
            return True


class MemorySessionStore:

    def __init__(self, lock: asyncio.Lock) -> None:
        self.records: Dict[str, SessionRecord] = {}
        self._lock = lock

    async def store(self, record: SessionRecord) -> None:
        async with self._lock:
            self.records[record.session_id] = replace(record)

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        async with self._lock:
            record = self.records.get(session_id)
            return replace(record) if record else None

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self.records.pop(session_id, None)


class MemoryCredentialStore:

    def __init__(self, lock: asyncio.Lock) -> None:
        self.records: Dict[str, CredentialRecord] = {}  # credential_id -> record
        self._lock = lock

    async def store(self, record: CredentialRecord) -> None:
        async with self._lock:
            self.records[record.credential.id] = CredentialRecord(
                user_id=record.user_id,
                credential=replace(record.credential),
            )

    async def get(self, user_id: str) -> List[StoredCredential]:
        async with self._lock:
            return [
                replace(r.credential)
                for r in self.records.values()
                if r.user_id == user_id
            ]

    async def get_by_id(self, credential_id: str) -> Optional[CredentialRecord]:
        async with self._lock:
            record = self.records.get(credential_id)
            if record is None:
                return None
            return CredentialRecord(user_id=record.user_id, credential=replace(record.credential))

    async def update_counter(self, credential_id: str, counter: int) -> None:
        async with self._lock:
            record = self.records.get(credential_id)
            if record is None:
                logger.warning("Counter update for unknown credential", credential_id=credential_id)
                return
            # Counters never move backwards
            record.credential.counter = max(record.credential.counter, counter)


class MemoryStorage:
    """StorageAdapter backed by dictionaries."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self.otp = MemoryOtpStore(self._lock)
        self.session = MemorySessionStore(self._lock)
        self.credential = MemoryCredentialStore(self._lock)
