"""
Shared fixtures for passgate tests.
"""

import pytest

from passgate.adapters.memory import MemoryStorage

from helpers.authenticator import SoftwareAuthenticator
from helpers.factories import ORIGIN, build_auth


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
async def auth(storage):
    """Create and initialize an Auth instance."""
    instance = build_auth(storage=storage)
    await instance.initialize()
    yield instance
    await instance.shutdown()


@pytest.fixture
def authenticator():
    return SoftwareAuthenticator(origin=ORIGIN)
