from unittest.mock import Mock

import pytest

from helpers import InMemoryMemoryStore, InMemoryStateStore


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def memory_store():
    return InMemoryMemoryStore()
