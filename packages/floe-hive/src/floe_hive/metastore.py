"""Metastore collaborators and their in-memory reference implementations.

This module provides:
- Metastore / TransactionalMetadata protocols consumed by procedures
- InMemoryMetastore: Thread-safe table and partition registry
- InMemoryTransactionalMetadata: Insert transactions staged until commit

The in-memory implementations back the CLI's YAML catalog file and the
test suite. They enforce partition uniqueness at commit time.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

from floe_hive.config import (
    CatalogDocument,
    ColumnHandle,
    InsertTableHandle,
    Partition,
    PartitionUpdate,
    TableDefinition,
    TableHandle,
    TransactionContext,
    UpdateMode,
)
from floe_hive.errors import PartitionExistsError, TableNotFoundError
from floe_hive.locations import HiveLocationService
from floe_hive.observability import get_logger
from floe_hive.partitions import make_partition_name, parse_partition_name
from floe_hive.updates import PartitionUpdateCodec

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


class Metastore(Protocol):
    """Read access to registered partitions."""

    def get_partition(
        self,
        schema_name: str,
        table_name: str,
        values: Sequence[str],
    ) -> Partition | None: ...


class TransactionalMetadata(Protocol):
    """Table resolution and insert transactions against the catalog.

    A fresh instance is obtained for every procedure invocation.
    """

    def get_table_handle(self, schema_name: str, table_name: str) -> TableHandle: ...

    def begin_insert(self, table: TableHandle) -> tuple[InsertTableHandle, TransactionContext]: ...

    def finish_insert(
        self,
        context: TransactionContext,
        handle: InsertTableHandle,
        fragments: Sequence[bytes],
        computed_statistics: Sequence[Any],
    ) -> None: ...

    def commit(self, context: TransactionContext) -> None: ...

    def rollback(self, context: TransactionContext) -> None: ...


class _TableRecord:
    __slots__ = ("handle", "partitions")

    def __init__(self, handle: TableHandle) -> None:
        self.handle = handle
        self.partitions: dict[str, Partition] = {}


class InMemoryMetastore:
    """Thread-safe in-memory catalog of tables and partitions.

    Partitions are keyed by their canonical name, computed with the same
    make_partition_name used by the procedures.

    Example:
        >>> metastore = InMemoryMetastore()
        >>> metastore.create_table("web", "sales", ["year", "region"], "/data/web/sales")
        >>> metastore.get_partition("web", "sales", ["2024", "west"]) is None
        True
    """

    def __init__(self, *, logger: BoundLogger | None = None) -> None:
        self._lock = threading.RLock()
        self._tables: dict[tuple[str, str], _TableRecord] = {}
        self._logger = logger or get_logger()

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def create_table(
        self,
        schema_name: str,
        table_name: str,
        partition_columns: Sequence[str],
        location: str,
    ) -> TableHandle:
        """Register a table.

        Raises:
            ValueError: If the table is already registered.
        """
        handle = TableHandle(
            schema_name=schema_name,
            table_name=table_name,
            partition_columns=tuple(
                ColumnHandle(name=name, ordinal=i) for i, name in enumerate(partition_columns)
            ),
            location=location,
        )
        with self._lock:
            key = (schema_name, table_name)
            if key in self._tables:
                msg = f"Table already exists: {handle.qualified_name}"
                raise ValueError(msg)
            self._tables[key] = _TableRecord(handle)
        self._logger.debug("table_registered", table=handle.qualified_name)
        return handle

    def get_table(self, schema_name: str, table_name: str) -> TableHandle | None:
        """Return the table handle, or None if the table is unknown."""
        with self._lock:
            record = self._tables.get((schema_name, table_name))
            return record.handle if record else None

    def list_tables(self) -> list[TableHandle]:
        """Return all registered tables ordered by schema and name."""
        with self._lock:
            return [self._tables[key].handle for key in sorted(self._tables)]

    # -------------------------------------------------------------------------
    # Partitions
    # -------------------------------------------------------------------------

    def get_partition(
        self,
        schema_name: str,
        table_name: str,
        values: Sequence[str],
    ) -> Partition | None:
        """Look up a partition by its values.

        Raises:
            TableNotFoundError: If the table is unknown.
        """
        with self._lock:
            record = self._record(schema_name, table_name)
            name = make_partition_name(record.handle.partition_column_names, values)
            return record.partitions.get(name)

    def list_partition_names(self, schema_name: str, table_name: str) -> list[str]:
        """Return canonical names of a table's partitions, sorted.

        Raises:
            TableNotFoundError: If the table is unknown.
        """
        with self._lock:
            return sorted(self._record(schema_name, table_name).partitions)

    def add_partitions(self, partitions: Sequence[Partition]) -> None:
        """Register partitions all-or-nothing.

        Raises:
            TableNotFoundError: If a partition's table is unknown.
            PartitionExistsError: If any partition is already registered.
                Nothing is registered in that case.
        """
        with self._lock:
            staged: list[tuple[_TableRecord, str, Partition]] = []
            seen: set[tuple[str, str, str]] = set()
            for partition in partitions:
                record = self._record(partition.schema_name, partition.table_name)
                name = make_partition_name(record.handle.partition_column_names, partition.values)
                key = (partition.schema_name, partition.table_name, name)
                if name in record.partitions or key in seen:
                    raise PartitionExistsError(partition.schema_name, partition.table_name, name)
                seen.add(key)
                staged.append((record, name, partition))
            for record, name, partition in staged:
                record.partitions[name] = partition
                self._logger.debug(
                    "partition_added",
                    table=record.handle.qualified_name,
                    partition=name,
                )

    def _record(self, schema_name: str, table_name: str) -> _TableRecord:
        record = self._tables.get((schema_name, table_name))
        if record is None:
            raise TableNotFoundError(f"{schema_name}.{table_name}")
        return record

    # -------------------------------------------------------------------------
    # Catalog documents
    # -------------------------------------------------------------------------

    @classmethod
    def from_document(cls, document: CatalogDocument) -> InMemoryMetastore:
        """Build a metastore from a parsed catalog file."""
        metastore = cls()
        for table in document.tables:
            handle = metastore.create_table(
                table.schema_name,
                table.name,
                table.partition_columns,
                table.location,
            )
            metastore.add_partitions([
                Partition(
                    schema_name=handle.schema_name,
                    table_name=handle.table_name,
                    values=tuple(values),
                    location=_partition_location(handle.location, handle.partition_column_names, values),
                )
                for values in table.partitions
            ])
        return metastore

    def to_document(self, base: CatalogDocument | None = None) -> CatalogDocument:
        """Export tables and partitions, keeping other settings from base."""
        base = base or CatalogDocument()
        with self._lock:
            tables = [
                TableDefinition(
                    schema_name=record.handle.schema_name,
                    name=record.handle.table_name,
                    location=record.handle.location,
                    partition_columns=record.handle.partition_column_names,
                    partitions=[
                        list(record.partitions[name].values) for name in sorted(record.partitions)
                    ],
                )
                for _, record in sorted(self._tables.items())
            ]
        return base.model_copy(update={"tables": tables})


def _partition_location(table_location: str, columns: Sequence[str], values: Sequence[str]) -> str:
    return f"{table_location.rstrip('/')}/{make_partition_name(columns, values)}"


class _InsertTransaction:
    __slots__ = ("handle", "updates", "finished")

    def __init__(self, handle: InsertTableHandle) -> None:
        self.handle = handle
        self.updates: list[PartitionUpdate] = []
        self.finished = False


class InMemoryTransactionalMetadata:
    """Insert transactions against an InMemoryMetastore.

    finish_insert stages partition updates; commit registers them on the
    metastore atomically. A transaction that is never committed leaves no
    trace on the metastore.

    Example:
        >>> metadata = InMemoryTransactionalMetadata(metastore)
        >>> table = metadata.get_table_handle("web", "sales")
        >>> handle, context = metadata.begin_insert(table)
    """

    def __init__(
        self,
        metastore: InMemoryMetastore,
        location_service: HiveLocationService | None = None,
        codec: PartitionUpdateCodec | None = None,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._metastore = metastore
        self._location_service = location_service or HiveLocationService()
        self._codec = codec or PartitionUpdateCodec()
        self._logger = logger or get_logger()
        self._transactions: dict[str, _InsertTransaction] = {}

    def get_table_handle(self, schema_name: str, table_name: str) -> TableHandle:
        """Resolve a table.

        Raises:
            TableNotFoundError: If the table is unknown.
        """
        handle = self._metastore.get_table(schema_name, table_name)
        if handle is None:
            raise TableNotFoundError(f"{schema_name}.{table_name}")
        return handle

    def begin_insert(self, table: TableHandle) -> tuple[InsertTableHandle, TransactionContext]:
        """Open an insert transaction on a table."""
        context = TransactionContext()
        location_handle = self._location_service.for_existing_table(table, context.transaction_id)
        handle = InsertTableHandle(table=table, location_handle=location_handle)
        self._transactions[context.transaction_id] = _InsertTransaction(handle)
        self._logger.debug(
            "insert_begun",
            table=table.qualified_name,
            transaction_id=context.transaction_id,
            write_mode=location_handle.write_mode.value,
        )
        return handle, context

    def finish_insert(
        self,
        context: TransactionContext,
        handle: InsertTableHandle,
        fragments: Sequence[bytes],
        computed_statistics: Sequence[Any],
    ) -> None:
        """Stage the partition updates carried by fragments.

        Raises:
            ValueError: If the transaction is unknown or already finished,
                the handle belongs to another transaction, or a fragment
                is not a NEW partition update.
        """
        transaction = self._transaction(context)
        if transaction.finished:
            msg = f"Transaction already finished: {context.transaction_id}"
            raise ValueError(msg)
        if handle != transaction.handle:
            msg = f"Insert handle does not belong to transaction {context.transaction_id}"
            raise ValueError(msg)
        updates = [self._codec.from_json_bytes(fragment) for fragment in fragments]
        for update in updates:
            if update.update_mode is not UpdateMode.NEW:
                msg = f"Unsupported update mode for {update.name}: {update.update_mode.value}"
                raise ValueError(msg)
        transaction.updates.extend(updates)
        transaction.finished = True
        self._logger.debug(
            "insert_finished",
            transaction_id=context.transaction_id,
            partitions=[update.name for update in updates],
            statistics=len(computed_statistics),
        )

    def commit(self, context: TransactionContext) -> None:
        """Register staged partitions on the metastore.

        Partition values are parsed back from each update's canonical
        name, so an empty or None value is stored as
        ``__HIVE_DEFAULT_PARTITION__``.

        Raises:
            ValueError: If the transaction is unknown or was not finished.
            PartitionExistsError: If a staged partition was registered
                concurrently. Nothing is registered in that case.
        """
        transaction = self._transaction(context)
        if not transaction.finished:
            msg = f"Transaction not finished: {context.transaction_id}"
            raise ValueError(msg)
        table = transaction.handle.table
        partitions = [
            Partition(
                schema_name=table.schema_name,
                table_name=table.table_name,
                values=tuple(value for _, value in parse_partition_name(update.name)),
                location=update.target_path,
                parameters={"numFiles": str(update.file_count), "numRows": str(update.row_count)},
            )
            for update in transaction.updates
        ]
        try:
            self._metastore.add_partitions(partitions)
        finally:
            del self._transactions[context.transaction_id]
        self._logger.debug("insert_committed", transaction_id=context.transaction_id)

    def rollback(self, context: TransactionContext) -> None:
        """Discard a transaction's staged updates."""
        self._transactions.pop(context.transaction_id, None)
        self._logger.debug("insert_rolled_back", transaction_id=context.transaction_id)

    def _transaction(self, context: TransactionContext) -> _InsertTransaction:
        transaction = self._transactions.get(context.transaction_id)
        if transaction is None:
            msg = f"Unknown transaction: {context.transaction_id}"
            raise ValueError(msg)
        return transaction
