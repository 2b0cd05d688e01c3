"""Tests for logging setup."""

import logging

from igdb_sync.config import LoggingConfig
from igdb_sync.logger import NOISY_LOGGERS, add_service_name, get_logger, setup_logging
from structlog.testing import capture_logs


class TestSetupLogging:
    """Tests for structlog and stdlib configuration."""

    def test_service_name_added(self) -> None:
        event = add_service_name(None, "info", {"event": "Fetched catalog page"})

        assert event["service"] == "igdb-sync"

    def test_service_name_not_overwritten(self) -> None:
        event = add_service_name(None, "info", {"event": "x", "service": "other"})

        assert event["service"] == "other"

    def test_noisy_loggers_quieted(self) -> None:
        setup_logging(LoggingConfig(level="INFO", format="json"))

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_debug_keeps_noisy_loggers(self) -> None:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.NOTSET)

        setup_logging(LoggingConfig(level="DEBUG", format="console"))

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.NOTSET

    def test_get_logger_binds_context(self) -> None:
        with capture_logs() as logs:
            get_logger(__name__, component="fetcher").info("Fetched catalog page", offset=0)

        assert logs == [
            {
                "event": "Fetched catalog page",
                "component": "fetcher",
                "offset": 0,
                "log_level": "info",
            }
        ]
