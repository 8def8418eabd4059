"""floe procedures commands - Inspect registered procedures."""

from __future__ import annotations

import click

from floe_cli.output import print_table


@click.group()
def procedures() -> None:
    """Inspect catalog procedures."""


@procedures.command("list")
def list_procedures() -> None:
    """List callable procedures and their arguments."""
    from floe_cli.catalog import build_registry
    from floe_hive.config import CatalogDocument
    from floe_hive.metastore import InMemoryMetastore

    document = CatalogDocument()
    registry, access_control = build_registry(document, InMemoryMetastore.from_document(document))
    access_control.close()
    print_table(
        "Procedures",
        ["procedure", "arguments"],
        [
            (
                procedure.qualified_name,
                ", ".join(f"{arg.name} {arg.type.value}" for arg in procedure.arguments),
            )
            for procedure in registry.list_procedures()
        ],
    )
