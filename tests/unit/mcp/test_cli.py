"""Tests for CLI entry point.

These tests verify the CLI argument parsing and server startup.
"""

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest

from mp_relay import cli


@pytest.fixture
def mock_runtime() -> Iterator[dict[str, MagicMock]]:
    """Patch everything main() touches outside parsing."""
    with (
        patch.object(cli, "mcp") as mock_mcp,
        patch.object(cli, "set_env_fallback") as mock_fallback,
        patch.object(cli, "set_client_options") as mock_options,
        patch.object(cli, "configure_logging") as mock_logging,
    ):
        yield {
            "mcp": mock_mcp,
            "set_env_fallback": mock_fallback,
            "set_client_options": mock_options,
            "configure_logging": mock_logging,
        }


class TestCliParsing:
    """Tests for CLI argument parsing."""

    def test_cli_defaults(self) -> None:
        """CLI should have sensible defaults."""
        args = cli.parse_args([])
        assert args.transport == "stdio"
        assert args.host == "127.0.0.1"
        assert args.port == 8000
        assert args.timeout == 120.0
        assert args.export_timeout == 600.0
        assert args.log_level == "INFO"

    def test_cli_accepts_http_options(self) -> None:
        """CLI should accept transport, host and port."""
        args = cli.parse_args(
            ["--transport", "http", "--host", "0.0.0.0", "--port", "9000"]
        )
        assert args.transport == "http"
        assert args.host == "0.0.0.0"
        assert args.port == 9000

    def test_log_level_is_case_insensitive(self) -> None:
        """--log-level should accept lowercase names."""
        assert cli.parse_args(["--log-level", "debug"]).log_level == "DEBUG"

    def test_rejects_unknown_transport(self) -> None:
        """Unknown transports should exit with a usage error."""
        with pytest.raises(SystemExit):
            cli.parse_args(["--transport", "websocket"])


class TestCliExecution:
    """Tests for CLI execution."""

    def test_main_runs_stdio_by_default(self, mock_runtime: dict[str, MagicMock]) -> None:
        """stdio enables the environment credential fallback."""
        cli.main([])

        mock_runtime["mcp"].run.assert_called_once_with(transport="stdio")
        mock_runtime["set_env_fallback"].assert_called_once_with(True)
        mock_runtime["configure_logging"].assert_called_once_with("INFO")

    def test_main_runs_http_transport(self, mock_runtime: dict[str, MagicMock]) -> None:
        """HTTP transports bind host and port and read headers only."""
        cli.main(["--transport", "http", "--host", "0.0.0.0", "--port", "9000"])

        mock_runtime["mcp"].run.assert_called_once_with(
            transport="http", host="0.0.0.0", port=9000
        )
        mock_runtime["set_env_fallback"].assert_called_once_with(False)

    def test_main_runs_sse_transport(self, mock_runtime: dict[str, MagicMock]) -> None:
        """SSE is served like HTTP."""
        cli.main(["--transport", "sse"])

        mock_runtime["mcp"].run.assert_called_once_with(
            transport="sse", host="127.0.0.1", port=8000
        )

    def test_main_sets_timeouts(self, mock_runtime: dict[str, MagicMock]) -> None:
        """Timeout flags are passed to the client options."""
        cli.main(["--timeout", "30", "--export-timeout", "900"])

        mock_runtime["set_client_options"].assert_called_once_with(
            timeout=30.0, export_timeout=900.0
        )
