"""
Command-line interface for IGDB Catalog Sync.

Provides commands to check configuration, fetch a single page,
run one sync by hand, and start the scheduled service.
"""

import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from igdb_sync.config import get_settings
from igdb_sync.logger import get_logger, setup_logging

logger = get_logger(__name__, component="cli")


class CLIOutput(BaseModel):
    """Structured output for CLI commands."""

    success: bool
    command: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] | list[Any] | None = None
    error: str | None = None


def print_json(output: CLIOutput) -> None:
    """Print output as formatted JSON."""
    print(json.dumps(output.model_dump(), indent=2, default=str))


async def cmd_test_config() -> None:
    """Test configuration loading."""
    settings = get_settings()

    output = CLIOutput(
        success=True,
        command="test-config",
        data={
            "environment": settings.environment,
            "igdb_base_url": settings.igdb.base_url,
            "igdb_page_size": settings.igdb.page_size,
            "igdb_client_id": settings.igdb.client_id,
            "igdb_secret_configured": bool(settings.igdb.client_secret.get_secret_value()),
            "ingestion_queue_url": f"{settings.ingestion.api_domain}/v1/game/queue",
            "ingestion_chunk_size": settings.ingestion.chunk_size,
            "ingestion_token_configured": bool(settings.ingestion.api_token.get_secret_value()),
            "retry_max_attempts": settings.retry.max_attempts,
            "retry_min_backoff_seconds": settings.retry.min_backoff_seconds,
            "scheduler_job_name": settings.scheduler.job_name,
            "scheduler_cron": settings.scheduler.cron,
            "scheduler_timezone": settings.scheduler.timezone,
        },
    )
    print_json(output)


async def cmd_fetch_page(offset: int) -> None:
    """Fetch one catalog page without forwarding it."""
    from igdb_sync.sync.clients.igdb import IGDBCatalogClient
    from igdb_sync.sync.credentials import SyncCredentialProvider
    from igdb_sync.sync.fetcher import PageFetcher

    settings = get_settings()
    logger.info("Fetching catalog page", offset=offset)

    credentials = SyncCredentialProvider.from_config(settings.igdb, settings.ingestion)
    fetcher = PageFetcher(IGDBCatalogClient.from_config(settings.igdb), credentials)
    try:
        page = await fetcher.fetch_page(offset)
    finally:
        await fetcher.close()
        await credentials.close()

    output = CLIOutput(
        success=True,
        command="fetch-page",
        data={
            "offset": offset,
            "records": len(page),
            "ids": [record.get("id") for record in page],
        },
    )
    print_json(output)


async def cmd_sync_once() -> None:
    """Run one full sync now, without the scheduler."""
    from igdb_sync.sync.contracts import RunOrigin
    from igdb_sync.sync.scheduler import SyncService

    async with SyncService(get_settings()) as service:
        result = await service.run_once(RunOrigin.MANUAL)

    output = CLIOutput(
        success=result.succeeded,
        command="sync-once",
        data=result.to_dict(),
        error=result.error,
    )
    print_json(output)


async def cmd_serve() -> None:
    """Start the scheduled service and block until interrupted."""
    from igdb_sync.sync.scheduler import serve

    await serve(get_settings())


def print_usage() -> None:
    """Print CLI usage information."""
    usage = """
IGDB Catalog Sync CLI
=====================

Usage: igdb-sync <command> [arguments]

Commands:
  test-config                 Test configuration loading
  fetch-page [offset]         Fetch one catalog page (default offset 0)
  sync-once                   Run one full sync now
  serve                       Run the daily sync service (plus one run at startup)

Examples:
  igdb-sync fetch-page 500
  igdb-sync serve
"""
    print(usage)


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    command = sys.argv[1]

    if command in ("help", "--help", "-h"):
        print_usage()
        return

    try:
        setup_logging(get_settings().logging)

        if command == "test-config":
            asyncio.run(cmd_test_config())

        elif command == "fetch-page":
            offset = int(sys.argv[2]) if len(sys.argv) > 2 else 0
            if offset < 0:
                print("Error: offset must be non-negative")
                sys.exit(1)
            asyncio.run(cmd_fetch_page(offset))

        elif command == "sync-once":
            asyncio.run(cmd_sync_once())

        elif command == "serve":
            asyncio.run(cmd_serve())

        else:
            print(f"Unknown command: {command}")
            print_usage()
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception("CLI error", error=str(e))
        output = CLIOutput(
            success=False,
            command=command,
            error=str(e),
        )
        print_json(output)
        sys.exit(1)


if __name__ == "__main__":
    main()
