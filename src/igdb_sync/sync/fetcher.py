"""Page fetcher: one catalog query per call, with a freshly obtained token."""

from igdb_sync.logger import get_logger
from igdb_sync.sync.clients.base import APIError
from igdb_sync.sync.clients.igdb import IGDBCatalogClient
from igdb_sync.sync.contracts import CatalogPage
from igdb_sync.sync.credentials import CredentialProvider

# IGDB answers these when the bearer token is revoked or expired
REJECTED_TOKEN_STATUSES = frozenset({401, 403})


class PageFetcher:
    """
    Fetches a single catalog page.

    Errors are not handled here; the orchestrator retries the whole
    page attempt around this call. A rejected token is dropped from the
    provider first, so the retry asks Twitch for a new one.
    """

    def __init__(
        self,
        catalog: IGDBCatalogClient,
        credentials: CredentialProvider,
    ) -> None:
        self._catalog = catalog
        self._credentials = credentials
        self._logger = get_logger(__name__, component="fetcher")

    @property
    def page_size(self) -> int:
        return self._catalog.page_size

    async def fetch_page(self, offset: int) -> CatalogPage:
        token = await self._credentials.get_catalog_token()
        try:
            page = await self._catalog.query_games(token=token, offset=offset)
        except APIError as e:
            if e.status_code in REJECTED_TOKEN_STATUSES:
                self._logger.warning(
                    "Catalog token rejected", offset=offset, status_code=e.status_code
                )
                self._credentials.invalidate_catalog_token()
            raise
        self._logger.info("Fetched catalog page", offset=offset, records=len(page))
        return page

    async def close(self) -> None:
        await self._catalog.close()
