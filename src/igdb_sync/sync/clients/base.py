"""
Base HTTP client and error types shared by the catalog and ingestion clients.

Retries are deliberately absent here: a failed request propagates to the
orchestrator, which retries the whole page attempt.
"""

from datetime import datetime, timezone
from typing import Any

import httpx

from igdb_sync.logger import get_logger


class SyncError(Exception):
    """Base exception for sync errors."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        endpoint: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.endpoint = endpoint
        self.status_code = status_code
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)


class APIError(SyncError):
    """Raised when an upstream or downstream API returns a non-2xx response."""

    pass


class CredentialError(SyncError):
    """Raised when a bearer token cannot be obtained."""

    pass


class BaseAPIClient:
    """
    Owns a lazily created ``httpx.AsyncClient`` and turns error
    responses into ``APIError``.

    Subclasses set ``source_name`` and build their own requests on top
    of ``_make_request``.
    """

    source_name: str = "api"

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Pre-built client (tests, shared pools); closed by the caller
        """
        self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._closed = False
        self._logger = get_logger(
            self.__class__.__name__,
            component="client",
            source=self.source_name,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """
        Get or create HTTP client.

        Raises:
            RuntimeError: If the client was already closed
        """
        if self._closed:
            raise RuntimeError(f"{self.__class__.__name__} is closed")
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={
                    "User-Agent": "IGDBCatalogSync/1.0",
                    "Accept": "application/json",
                },
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        self._closed = True
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseAPIClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _make_request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            httpx.Response: Successful (2xx) response

        Raises:
            APIError: If the API returns a non-2xx response
            httpx.HTTPError: On transport failures
        """
        self._logger.debug("Making request", method=method, url=url)

        response = await self.client.request(method, url, **kwargs)

        if not response.is_success:
            raise APIError(
                f"API error: {response.status_code}",
                source=self.source_name,
                endpoint=url,
                status_code=response.status_code,
            )

        return response
