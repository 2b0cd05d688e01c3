"""
Bearer credentials for both sides of the sync.

The catalog side uses the Twitch OAuth client-credentials flow; the
ingestion side uses a configured service token. Callers ask for a token
on every request and never hold on to one.
"""

import time
from collections.abc import Callable
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, SecretStr

from igdb_sync.config import IGDBConfig, IngestionConfig
from igdb_sync.sync.clients.base import APIError, BaseAPIClient, CredentialError

# Refresh the app token this long before Twitch says it expires
EXPIRY_MARGIN_SECONDS = 60.0


class CredentialProvider(Protocol):
    """Supplies bearer tokens to the fetcher and the forwarder."""

    async def get_catalog_token(self) -> str: ...

    async def get_ingestion_token(self) -> str: ...

    def invalidate_catalog_token(self) -> None: ...


class TwitchTokenResponse(BaseModel):
    """Payload of ``POST /oauth2/token``."""

    access_token: str
    expires_in: int
    token_type: str = "bearer"


class TwitchAppTokenSource(BaseAPIClient):
    """
    Twitch app access token for IGDB.

    Tokens are valid for roughly sixty days, so one is reused until it
    is close to expiry instead of hitting the token endpoint per page.
    """

    source_name = "twitch_oauth"

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: SecretStr,
        token_url: str = "https://id.twitch.tv/oauth2/token",
        clock: Callable[[], float] = time.monotonic,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0

    @classmethod
    def from_config(
        cls,
        config: IGDBConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "TwitchAppTokenSource":
        return cls(
            client_id=config.client_id,
            client_secret=config.client_secret,
            token_url=config.token_url,
            timeout=config.timeout_seconds,
            http_client=http_client,
        )

    def invalidate(self) -> None:
        """Forget the current token so the next call requests a new one."""
        self._token = None
        self._expires_at = 0.0

    async def get_token(self) -> str:
        """
        Return a valid app access token, requesting one if needed.

        Raises:
            CredentialError: If the token endpoint fails or answers garbage
        """
        if self._token is not None and self._clock() < self._expires_at:
            return self._token

        try:
            response = await self._make_request(
                "POST",
                self._token_url,
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret.get_secret_value(),
                    "grant_type": "client_credentials",
                },
            )
            payload = TwitchTokenResponse.model_validate(response.json())
        except (APIError, httpx.HTTPError, ValueError) as e:
            self.invalidate()
            raise CredentialError(
                f"Could not obtain Twitch app token: {e}",
                source=self.source_name,
                endpoint=self._token_url,
                status_code=getattr(e, "status_code", None),
                original_error=e,
            ) from e

        self._token = payload.access_token
        self._expires_at = self._clock() + max(payload.expires_in - EXPIRY_MARGIN_SECONDS, 0.0)
        self._logger.info("Obtained Twitch app token", expires_in=payload.expires_in)
        return self._token


class StaticTokenSource:
    """
    Service token read from configuration.

    The ingestion service does not issue tokens of its own yet, so the
    configured secret is handed out on every call. A token-issuing source
    only needs the same async ``get_token()`` to replace it.
    """

    def __init__(self, token: SecretStr) -> None:
        self._token = token

    async def get_token(self) -> str:
        value = self._token.get_secret_value()
        if not value:
            raise CredentialError("Ingestion token is empty", source="ingestion_token")
        return value


class SyncCredentialProvider:
    """Default provider: Twitch for the catalog, service token for ingestion."""

    def __init__(
        self,
        catalog: TwitchAppTokenSource,
        ingestion: StaticTokenSource,
    ) -> None:
        self._catalog = catalog
        self._ingestion = ingestion

    @classmethod
    def from_config(
        cls,
        igdb: IGDBConfig,
        ingestion: IngestionConfig,
    ) -> "SyncCredentialProvider":
        return cls(
            catalog=TwitchAppTokenSource.from_config(igdb),
            ingestion=StaticTokenSource(ingestion.api_token),
        )

    async def get_catalog_token(self) -> str:
        return await self._catalog.get_token()

    async def get_ingestion_token(self) -> str:
        return await self._ingestion.get_token()

    def invalidate_catalog_token(self) -> None:
        self._catalog.invalidate()

    async def close(self) -> None:
        await self._catalog.close()
