"""
conftest.py - Shared pytest fixtures for lending tests

Provides common fixtures used across unit, functional and conformance tests:
- Bare collaborators (storage, gate, registry)
- A quiet engine wired to all three
- An engine with collateral already minted to the borrower
"""

import pytest

from lending import InMemoryStorage, AccessGate, AssetRegistry

from tests.helpers import ADMIN, BORROWER, build_engine, mint


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def gate(storage):
    return AccessGate(storage, administrator=ADMIN)


@pytest.fixture
def registry(storage, gate):
    return AssetRegistry(storage, gate)


@pytest.fixture
def engine():
    """Quiet engine at START_TIME with nothing minted."""
    return build_engine()


@pytest.fixture
def funded_engine():
    """Engine with assets 1 and 2 minted to BORROWER."""
    eng = build_engine()
    mint(eng, BORROWER, 1, 2)
    return eng
