"""
IGDB catalog client.

Issues a single Apicalypse query against the ``/games`` endpoint with a
fixed field projection, page-size limit and offset.
"""

from typing import Any

import httpx

from igdb_sync.config import IGDBConfig
from igdb_sync.sync.clients.base import APIError, BaseAPIClient
from igdb_sync.sync.contracts import CatalogPage

IGDB_GAME_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "slug",
    "checksum",
    "aggregated_rating",
    "aggregated_rating_count",
    "status",
    "summary",
    "storyline",
    "url",
    "screenshots.*",
    "game_modes.*",
    "expanded_games.id",
    "expanded_games.name",
    "expanded_games.slug",
    "category",
    "genres.*",
    "platforms.*",
    "dlcs.id",
    "dlcs.name",
    "dlcs.slug",
    "expansions.id",
    "expansions.name",
    "expansions.slug",
    "similar_games.id",
    "similar_games.name",
    "similar_games.slug",
    "cover.*",
    "artworks.*",
    "collection.*",
    "alternative_names.*",
    "external_games.*",
    "franchises.*",
    "keywords.*",
    "game_localizations.*",
    "language_supports.*",
    "first_release_date",
)


def build_games_query(fields: tuple[str, ...], *, limit: int, offset: int) -> str:
    """Render an Apicalypse query body."""
    return f"fields {','.join(fields)}; limit {limit}; offset {offset};"


class IGDBCatalogClient(BaseAPIClient):
    """
    Client for the IGDB v4 ``/games`` endpoint.

    Example:
        >>> async with IGDBCatalogClient(client_id="abc") as client:
        ...     page = await client.query_games(token="t", offset=0)
    """

    source_name = "igdb_api"

    def __init__(
        self,
        *,
        client_id: str,
        base_url: str = "https://api.igdb.com/v4",
        page_size: int = 500,
        fields: tuple[str, ...] = IGDB_GAME_FIELDS,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._client_id = client_id
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._fields = fields

    @classmethod
    def from_config(
        cls,
        config: IGDBConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "IGDBCatalogClient":
        """Build a client from the IGDB configuration section."""
        return cls(
            client_id=config.client_id,
            base_url=config.base_url,
            page_size=config.page_size,
            timeout=config.timeout_seconds,
            http_client=http_client,
        )

    @property
    def page_size(self) -> int:
        return self._page_size

    async def query_games(self, *, token: str, offset: int) -> CatalogPage:
        """
        Fetch one page of games.

        Args:
            token: Twitch app access token
            offset: Number of records to skip

        Returns:
            CatalogPage: Records in API order, at most ``page_size`` long

        Raises:
            APIError: On non-2xx responses or a non-list payload
            httpx.HTTPError: On transport failures
        """
        url = f"{self._base_url}/games"
        response = await self._make_request(
            "POST",
            url,
            content=build_games_query(self._fields, limit=self._page_size, offset=offset),
            headers={
                "Client-ID": self._client_id,
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "text/plain",
            },
        )

        records = response.json()
        if not isinstance(records, list):
            raise APIError(
                "Unexpected IGDB payload: expected a JSON array",
                source=self.source_name,
                endpoint=url,
                status_code=response.status_code,
            )

        self._logger.debug("Fetched games", offset=offset, count=len(records))
        return records
