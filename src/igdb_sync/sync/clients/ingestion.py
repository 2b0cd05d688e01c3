"""
Batch forwarder for the ingestion queue endpoint.

Posts one chunk of catalog records per request, with a freshly
obtained ingestion token each time.
"""

import hashlib
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from igdb_sync.sync.credentials import CredentialProvider

from igdb_sync.config import IngestionConfig
from igdb_sync.sync.clients.base import BaseAPIClient
from igdb_sync.sync.contracts import CatalogRecord

QUEUE_PATH = "/v1/game/queue"


def idempotency_key(chunk: list[CatalogRecord]) -> str:
    """
    Stable key for a chunk, derived from its record ids in order.

    A page retried after a partial forward re-sends identical chunks,
    so the ingestion side can drop repeats by this key.
    """
    ids = ",".join(str(record.get("id", "")) for record in chunk)
    return hashlib.sha256(ids.encode("utf-8")).hexdigest()


class BatchForwarder(BaseAPIClient):
    """
    Posts chunks to ``{api_domain}/v1/game/queue``.

    Example:
        >>> forwarder = BatchForwarder(api_domain="https://api", credentials=provider)
        >>> await forwarder.forward([{"id": 1}, {"id": 2}])
    """

    source_name = "ingestion_api"

    def __init__(
        self,
        *,
        api_domain: str,
        credentials: "CredentialProvider",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._queue_url = f"{api_domain.rstrip('/')}{QUEUE_PATH}"
        self._credentials = credentials

    @classmethod
    def from_config(
        cls,
        config: IngestionConfig,
        credentials: "CredentialProvider",
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "BatchForwarder":
        """Build a forwarder from the ingestion configuration section."""
        return cls(
            api_domain=config.api_domain,
            credentials=credentials,
            timeout=config.timeout_seconds,
            http_client=http_client,
        )

    @property
    def queue_url(self) -> str:
        return self._queue_url

    async def forward(self, chunk: list[CatalogRecord]) -> None:
        """
        Send one chunk to the ingestion queue.

        Raises:
            CredentialError: If no ingestion token can be obtained
            APIError: On non-2xx responses
            httpx.HTTPError: On transport failures
        """
        token = await self._credentials.get_ingestion_token()

        await self._make_request(
            "POST",
            self._queue_url,
            json={"games": chunk},
            headers={
                "Authorization": f"Bearer {token}",
                "Idempotency-Key": idempotency_key(chunk),
            },
        )

        self._logger.debug("Forwarded chunk", records=len(chunk))
