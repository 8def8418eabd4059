"""Options shared by catalog commands."""

from __future__ import annotations

import click

from floe_cli.catalog import DEFAULT_CATALOG_PATH

catalog_option = click.option(
    "-f",
    "--catalog",
    "catalog_path",
    type=click.Path(exists=False, dir_okay=False),
    default=DEFAULT_CATALOG_PATH,
    help=f"Path to catalog.yaml [default: {DEFAULT_CATALOG_PATH}]",
)

user_option = click.option(
    "--user",
    default=None,
    help="User to authorize the operation for.",
)
