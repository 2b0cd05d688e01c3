"""Tests for the command-line interface."""

import json
from typing import Any
from unittest.mock import patch

import httpx
import pytest
import respx
from igdb_sync import cli
from igdb_sync.config import get_settings

TOKEN_URL = "https://id.twitch.tv/oauth2/token"
IGDB_GAMES_URL = "https://api.igdb.com/v4/games"
QUEUE_URL = "https://ingest.example.com/v1/game/queue"


def read_output(out: str) -> dict[str, Any]:
    """Parse the CLIOutput JSON that follows any log lines."""
    start = out.rfind("\n{\n")
    payload: dict[str, Any] = json.loads(out[start + 1 :] if start >= 0 else out)
    return payload


def mock_token() -> respx.Route:
    return respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json={"access_token": "app-token", "expires_in": 3600})
    )


@pytest.fixture
def fast_retries(mock_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    """No backoff or inter-page waits."""
    monkeypatch.setenv("RETRY_MIN_BACKOFF_SECONDS", "0")
    monkeypatch.setenv("SCHEDULER_PAGE_DELAY_SECONDS", "0")
    get_settings.cache_clear()


class TestCLI:
    """Tests for command dispatch and output."""

    def test_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("sys.argv", ["igdb-sync", "help"]):
            cli.main()

        assert "IGDB Catalog Sync CLI" in capsys.readouterr().out

    def test_no_command_exits(self) -> None:
        with patch("sys.argv", ["igdb-sync"]), pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1

    def test_unknown_command(self, mock_env: None) -> None:
        with patch("sys.argv", ["igdb-sync", "bogus"]), pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1

    def test_test_config_hides_secrets(
        self,
        mock_env: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch("sys.argv", ["igdb-sync", "test-config"]):
            cli.main()

        out = capsys.readouterr().out
        payload = read_output(out)

        assert payload["success"] is True
        assert payload["data"]["ingestion_queue_url"] == "https://ingest.example.com/v1/game/queue"
        assert payload["data"]["igdb_secret_configured"] is True
        assert "test_client_secret" not in out
        assert "test_service_token" not in out


class TestFetchPage:
    """Tests for the fetch-page command."""

    @respx.mock
    def test_prints_page_ids(
        self,
        mock_env: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_token()
        igdb = respx.post(IGDB_GAMES_URL).mock(
            return_value=httpx.Response(200, json=[{"id": 1942}, {"id": 1020}])
        )
        with patch("sys.argv", ["igdb-sync", "fetch-page", "500"]):
            cli.main()

        payload = read_output(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["data"] == {"offset": 500, "records": 2, "ids": [1942, 1020]}
        assert igdb.calls.last.request.content.endswith(b"limit 500; offset 500;")

    def test_negative_offset_rejected(
        self,
        mock_env: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with (
            patch("sys.argv", ["igdb-sync", "fetch-page", "-5"]),
            pytest.raises(SystemExit) as exc_info,
        ):
            cli.main()

        assert exc_info.value.code == 1
        assert "offset must be non-negative" in capsys.readouterr().out

    @respx.mock
    def test_upstream_error_exits_nonzero(
        self,
        mock_env: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_token()
        respx.post(IGDB_GAMES_URL).mock(return_value=httpx.Response(500))

        with (
            patch("sys.argv", ["igdb-sync", "fetch-page"]),
            pytest.raises(SystemExit) as exc_info,
        ):
            cli.main()

        payload = read_output(capsys.readouterr().out)
        assert exc_info.value.code == 1
        assert payload["success"] is False
        assert payload["command"] == "fetch-page"


class TestSyncOnce:
    """Tests for the sync-once command."""

    @respx.mock
    def test_completed_run(
        self,
        fast_retries: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_token()
        respx.post(IGDB_GAMES_URL).mock(
            return_value=httpx.Response(200, json=[{"id": i} for i in range(12)])
        )
        queue = respx.post(QUEUE_URL).mock(return_value=httpx.Response(202))

        with patch("sys.argv", ["igdb-sync", "sync-once"]):
            cli.main()

        payload = read_output(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["data"]["state"] == "completed"
        assert payload["data"]["origin"] == "manual"
        assert payload["data"]["offsets_fetched"] == [0]
        assert payload["data"]["records_forwarded"] == 12
        assert queue.call_count == 2

    @respx.mock
    def test_aborted_run_exits_zero(
        self,
        fast_retries: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """An abort is reported in the output, not the exit code."""
        mock_token()
        igdb = respx.post(IGDB_GAMES_URL).mock(return_value=httpx.Response(500))

        with patch("sys.argv", ["igdb-sync", "sync-once"]):
            cli.main()

        payload = read_output(capsys.readouterr().out)
        assert payload["success"] is False
        assert payload["data"]["state"] == "aborted"
        assert payload["error"] == "API error: 500"
        assert igdb.call_count == 3
