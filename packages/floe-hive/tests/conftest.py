"""Shared test fixtures for floe-hive tests.

Provides a sales table partitioned by (year, region), an in-memory
metastore holding it, and mock collaborators for the procedure.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from floe_hive.config import (
    ColumnHandle,
    HiveProcedureConfig,
    InsertTableHandle,
    LocationHandle,
    TableHandle,
    TransactionContext,
    WriteMode,
)
from floe_hive.locations import HiveLocationService
from floe_hive.metastore import InMemoryMetastore
from floe_hive.procedures import CreateEmptyPartitionProcedure

SALES_LOCATION = "s3://warehouse/web/sales"


@pytest.fixture
def sales_table() -> TableHandle:
    """Create a handle for web.sales partitioned by (year, region)."""
    return TableHandle(
        schema_name="web",
        table_name="sales",
        partition_columns=(
            ColumnHandle(name="year", ordinal=0),
            ColumnHandle(name="region", ordinal=1),
        ),
        location=SALES_LOCATION,
    )


@pytest.fixture
def insert_handle(sales_table: TableHandle) -> InsertTableHandle:
    """Create an insert handle that writes directly to the table location."""
    return InsertTableHandle(
        table=sales_table,
        location_handle=LocationHandle(
            target_path=SALES_LOCATION,
            write_path=SALES_LOCATION,
            write_mode=WriteMode.DIRECT_TO_TARGET_EXISTING_DIRECTORY,
        ),
    )


@pytest.fixture
def transaction_context() -> TransactionContext:
    """Create a fixed transaction context."""
    return TransactionContext(transaction_id="tx-1")


@pytest.fixture
def mock_metadata(
    sales_table: TableHandle,
    insert_handle: InsertTableHandle,
    transaction_context: TransactionContext,
) -> MagicMock:
    """Create a mock TransactionalMetadata resolving web.sales."""
    metadata = MagicMock()
    metadata.get_table_handle.return_value = sales_table
    metadata.begin_insert.return_value = (insert_handle, transaction_context)
    return metadata


@pytest.fixture
def mock_metastore() -> MagicMock:
    """Create a mock Metastore with no partitions."""
    metastore = MagicMock()
    metastore.get_partition.return_value = None
    return metastore


@pytest.fixture
def procedure(mock_metadata: MagicMock, mock_metastore: MagicMock) -> CreateEmptyPartitionProcedure:
    """Create the procedure wired to mock collaborators."""
    return CreateEmptyPartitionProcedure(
        metadata_factory=lambda: mock_metadata,
        metastore=mock_metastore,
        location_service=HiveLocationService(
            HiveProcedureConfig(temporary_staging_directory_enabled=False)
        ),
    )


@pytest.fixture
def metastore() -> InMemoryMetastore:
    """Create an in-memory metastore holding web.sales."""
    store = InMemoryMetastore()
    store.create_table("web", "sales", ["year", "region"], SALES_LOCATION)
    return store
