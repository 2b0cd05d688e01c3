"""Shared fixtures."""

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from igdb_sync.config import get_settings

TEST_ENV = {
    "IGDB_CLIENT_ID": "test_client_id",
    "IGDB_CLIENT_SECRET": "test_client_secret",
    "INGESTION_API_DOMAIN": "https://ingest.example.com/",
    "INGESTION_API_TOKEN": "test_service_token",
}


@pytest.fixture
def mock_env() -> Iterator[None]:
    """Mock environment variables for tests."""
    with patch.dict("os.environ", TEST_ENV):
        get_settings.cache_clear()
        yield
    get_settings.cache_clear()
