"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import MagicMock

import pytest

from config import Settings
from factories import TODAY
from memory_store import MemoryStore
from services import build_services


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(
        supabase_url="https://test.supabase.co",
        supabase_key="test_key",
        environment="test",
        default_total_tables=8,
        persons_per_table=2,
        change_poll_seconds=5,
        log_dir="logs",
    )


@pytest.fixture
def store():
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def services(test_settings, store):
    """Every service wired on the memory store, with the clock pinned to TODAY."""
    return build_services(settings=test_settings, store=store, today=lambda: TODAY)


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table
