"""
IGDB Catalog Sync.

Scheduled service that pulls the IGDB game catalog page by page
and republishes it in small batches to the ingestion queue.
"""

from igdb_sync.config import Settings, get_settings
from igdb_sync.logger import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
