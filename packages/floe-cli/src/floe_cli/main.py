"""CLI entry point for floe-hive.

This module defines the main CLI group using the LazyGroup pattern so
that `floe --help` does not import the catalog stack.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from floe_cli import __version__
from floe_cli.output import set_no_color

# Configure rich-click for better help formatting
rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that loads commands lazily.

    Attributes:
        lazy_subcommands: Mapping of command names to "module.attribute" paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return sorted names of registered and lazy commands."""
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, importing it on first use."""
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_path = self.lazy_subcommands[cmd_name]
        module_name, attr_name = module_path.rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "partitions": "floe_cli.commands.partitions.partitions",
    "procedures": "floe_cli.commands.procedures.procedures",
    "tables": "floe_cli.commands.tables.tables",
}


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="floe")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
def cli() -> None:
    """Floe Hive - catalog procedures for partitioned tables.

    Operate on a local catalog file (catalog.yaml) describing tables
    and their registered partitions.

    **Getting Started:**

    - `floe tables list` - Show tables in the catalog
    - `floe partitions create-empty` - Register an empty partition
    - `floe partitions list` - Show a table's partitions
    - `floe procedures list` - Show callable procedures
    """


if __name__ == "__main__":
    cli()
