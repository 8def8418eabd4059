"""Unit tests for floe_cli.main module."""

from __future__ import annotations

import click
from click.testing import CliRunner

from floe_cli.main import LAZY_COMMANDS, LazyGroup, cli


class TestCLIHelp:
    """Tests for CLI help output."""

    def test_help_shows_options(self) -> None:
        """Test that --help shows the global options."""
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "--version" in result.output
        assert "--no-color" in result.output

    def test_help_shows_all_commands(self) -> None:
        """Test that --help lists every command group."""
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        for name in ("partitions", "procedures", "tables"):
            assert name in result.output

    def test_help_shows_description(self) -> None:
        """Test that --help shows the CLI description."""
        result = CliRunner().invoke(cli, ["--help"])

        assert "Floe Hive" in result.output


class TestCLIVersion:
    """Tests for CLI version output."""

    def test_version_output(self) -> None:
        """Test that --version outputs the program name and version."""
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "floe" in result.output.lower()
        assert "0.1.0" in result.output

    def test_no_color_option_accepted(self) -> None:
        """Test that --no-color is accepted before a command."""
        result = CliRunner().invoke(cli, ["--no-color", "procedures", "list"])

        assert result.exit_code == 0


class TestLazyGroup:
    """Tests for LazyGroup command loading."""

    def test_lazy_commands_listed(self) -> None:
        """Test lazy commands appear in sorted order."""
        group = LazyGroup(name="test", lazy_subcommands=LAZY_COMMANDS)

        assert group.list_commands(click.Context(group)) == ["partitions", "procedures", "tables"]

    def test_lazy_command_loaded(self) -> None:
        """Test a lazy command resolves to its click group."""
        group = LazyGroup(name="test", lazy_subcommands=LAZY_COMMANDS)

        command = group.get_command(click.Context(group), "partitions")

        assert isinstance(command, click.Group)
        assert "create-empty" in command.commands

    def test_unknown_command(self) -> None:
        """Test unknown names resolve to None."""
        group = LazyGroup(name="test", lazy_subcommands=LAZY_COMMANDS)

        assert group.get_command(click.Context(group), "compile") is None
