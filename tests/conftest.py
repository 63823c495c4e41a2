"""
Pytest fixtures for the DTE test suite.

Provides:
- In-memory token and credential cache managers for the auth service
- A SQLite-backed session factory per test
"""

import pytest

from src.models.database_models import create_session_factory
from tests.helpers import InMemoryCacheManager, InMemoryTokenManager


@pytest.fixture
def token_manager():
    return InMemoryTokenManager()


@pytest.fixture
def cache_manager():
    return InMemoryCacheManager()


@pytest.fixture
def session_factory(tmp_path):
    """Fresh database file per test"""
    return create_session_factory(f"sqlite:///{tmp_path / 'dte_test.db'}")
