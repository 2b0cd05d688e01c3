"""
HTTP clients for the IGDB catalog API and the ingestion queue.

Both are built on a common base that owns the httpx client and maps
error responses to ``APIError``.
"""

from igdb_sync.sync.clients.base import (
    APIError,
    BaseAPIClient,
    CredentialError,
    SyncError,
)
from igdb_sync.sync.clients.igdb import IGDB_GAME_FIELDS, IGDBCatalogClient, build_games_query
from igdb_sync.sync.clients.ingestion import BatchForwarder, idempotency_key

__all__ = [
    # Base classes and errors
    "APIError",
    "BaseAPIClient",
    "CredentialError",
    "SyncError",
    # Clients
    "BatchForwarder",
    "IGDBCatalogClient",
    "IGDB_GAME_FIELDS",
    "build_games_query",
    "idempotency_key",
]
