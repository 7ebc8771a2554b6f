"""
Shared fixtures.

Settings are cached process-wide; every test starts from a clean cache
so environment tweaks in one test can't leak into another.
"""

import pytest

from splitledger.config import get_settings
from splitledger.models.ledger import Member


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def alice() -> Member:
    return Member(id="A", name="Alice", email="alice@example.com", user_id="user-a")


@pytest.fixture
def bob() -> Member:
    return Member(id="B", name="Bob")


@pytest.fixture
def carol() -> Member:
    return Member(id="C", name="Carol")


@pytest.fixture
def trio(alice, bob, carol) -> list[Member]:
    return [alice, bob, carol]
