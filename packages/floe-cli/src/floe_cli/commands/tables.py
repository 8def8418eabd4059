"""floe tables commands - Inspect tables in a catalog file."""

from __future__ import annotations

import click

from floe_cli.catalog import identity_for, load_catalog
from floe_cli.commands._options import catalog_option, user_option
from floe_cli.errors import handle_storage_error
from floe_cli.output import info, print_table


@click.group()
def tables() -> None:
    """Inspect catalog tables."""


@tables.command("list")
@catalog_option
@user_option
def list_tables(catalog_path: str, user: str | None) -> None:
    """List tables visible to the user."""
    from floe_hive.errors import FloeStorageError
    from floe_hive.metastore import InMemoryMetastore
    from floe_hive.security import create_access_control

    document = load_catalog(catalog_path)
    metastore = InMemoryMetastore.from_document(document)
    handles = {(t.schema_name, t.table_name): t for t in metastore.list_tables()}

    access_control = create_access_control(document.access_control)
    try:
        visible = access_control.filter_tables(identity_for(user), list(handles))
    except FloeStorageError as exc:
        handle_storage_error(exc)
    finally:
        access_control.close()

    if not visible:
        info("No tables")
        return
    print_table(
        "Tables",
        ["table", "partition columns", "location"],
        [
            (
                handles[key].qualified_name,
                ", ".join(handles[key].partition_column_names),
                handles[key].location,
            )
            for key in visible
        ],
    )
