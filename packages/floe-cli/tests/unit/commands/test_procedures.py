"""Unit tests for the floe procedures commands."""

from __future__ import annotations

from click.testing import CliRunner

from floe_cli.main import cli


def test_lists_create_empty_partition(cli_runner: CliRunner) -> None:
    """Test the procedure and its argument types are listed."""
    result = cli_runner.invoke(cli, ["procedures", "list"])

    assert result.exit_code == 0, result.output
    assert "system.create_empty_partition" in result.output
    assert "partition_columns" in result.output
