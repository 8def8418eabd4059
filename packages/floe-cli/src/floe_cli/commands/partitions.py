"""floe partitions commands - Register and list partitions."""

from __future__ import annotations

import click

from floe_cli.catalog import build_registry, identity_for, load_catalog, save_catalog
from floe_cli.commands._options import catalog_option, user_option
from floe_cli.errors import handle_storage_error
from floe_cli.output import info, print_table, success


@click.group()
def partitions() -> None:
    """Manage table partitions."""


@partitions.command("create-empty")
@catalog_option
@user_option
@click.option("--schema", "schema_name", required=True, help="Schema of the table.")
@click.option("--table", "table_name", required=True, help="Partitioned table.")
@click.option(
    "-c",
    "--column",
    "columns",
    multiple=True,
    required=True,
    help="Partition column, repeated in table order.",
)
@click.option(
    "-v",
    "--value",
    "values",
    multiple=True,
    required=True,
    help="Partition value, repeated in column order.",
)
def create_empty(
    catalog_path: str,
    user: str | None,
    schema_name: str,
    table_name: str,
    columns: tuple[str, ...],
    values: tuple[str, ...],
) -> None:
    """Register a partition without any files.

    Calls `system.create_empty_partition` and saves the catalog.

    Examples:

        floe partitions create-empty --schema web --table sales -c year -c region -v 2024 -v west
    """
    from floe_hive.errors import FloeStorageError
    from floe_hive.metastore import InMemoryMetastore
    from floe_hive.partitions import make_partition_name

    document = load_catalog(catalog_path)
    metastore = InMemoryMetastore.from_document(document)
    registry, access_control = build_registry(document, metastore)

    try:
        registry.call(
            "system",
            "create_empty_partition",
            {
                "schema_name": schema_name,
                "table_name": table_name,
                "partition_columns": list(columns),
                "partition_values": list(values),
            },
            identity=identity_for(user),
        )
    except FloeStorageError as exc:
        handle_storage_error(exc)
    finally:
        access_control.close()

    save_catalog(catalog_path, metastore.to_document(document))
    success(f"Registered partition {make_partition_name(columns, values)} on {schema_name}.{table_name}")


@partitions.command("list")
@catalog_option
@click.option("--schema", "schema_name", required=True, help="Schema of the table.")
@click.option("--table", "table_name", required=True, help="Partitioned table.")
def list_partitions(catalog_path: str, schema_name: str, table_name: str) -> None:
    """List the partitions registered on a table."""
    from floe_hive.errors import TableNotFoundError
    from floe_hive.metastore import InMemoryMetastore

    document = load_catalog(catalog_path)
    metastore = InMemoryMetastore.from_document(document)
    table = metastore.get_table(schema_name, table_name)
    if table is None:
        handle_storage_error(TableNotFoundError(f"{schema_name}.{table_name}"))

    names = metastore.list_partition_names(schema_name, table_name)
    if not names:
        info(f"No partitions on {schema_name}.{table_name}")
        return
    print_table(
        f"{schema_name}.{table_name}",
        ["partition", "location"],
        [(name, f"{table.location.rstrip('/')}/{name}") for name in names],
    )
