"""floe-hive: Hive-style catalog procedures for floe-runtime.

This package provides:
- system.create_empty_partition: register a partition without files
- A procedure registry with access-control checks
- Open Policy Agent authorizers (single and batch)
- In-memory metastore collaborators for local catalogs and tests
- Structured logging via structlog and OpenTelemetry spans

Example:
    >>> from floe_hive import CreateEmptyPartitionProcedure, InMemoryMetastore
    >>> metastore = InMemoryMetastore()
    >>> metastore.create_table("web", "sales", ["year", "region"], "s3://warehouse/web/sales")
    >>> procedure = CreateEmptyPartitionProcedure.in_memory(metastore)
    >>> procedure.create_empty_partition("web", "sales", ["year", "region"], ["2024", "west"])
    >>> metastore.list_partition_names("web", "sales")
    ['year=2024/region=west']
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    # Procedures
    "CreateEmptyPartitionProcedure",
    "Procedure",
    "ProcedureArgument",
    "ProcedureRegistry",
    "ArgumentType",
    # Collaborators
    "InMemoryMetastore",
    "InMemoryTransactionalMetadata",
    "HiveLocationService",
    "PartitionUpdateCodec",
    "TransactionCoordinator",
    # Access control
    "create_access_control",
    "Identity",
    # Configuration and data models
    "HiveProcedureConfig",
    "OpaConfig",
    "CatalogDocument",
    "TableHandle",
    "PartitionUpdate",
    "WriteInfo",
    # Partition naming
    "make_partition_name",
    # Exceptions
    "FloeStorageError",
    "InvalidProcedureArgumentError",
    "PartitionExistsError",
    "TableNotFoundError",
    "CatalogOperationError",
    "TransactionAbortedError",
    "IllegalTransactionStateError",
    "ProcedureNotFoundError",
    "AccessDeniedError",
]

_LAZY_MODULES = {
    "CreateEmptyPartitionProcedure": "floe_hive.procedures",
    "Procedure": "floe_hive.procedures",
    "ProcedureArgument": "floe_hive.procedures",
    "ProcedureRegistry": "floe_hive.procedures",
    "ArgumentType": "floe_hive.procedures",
    "InMemoryMetastore": "floe_hive.metastore",
    "InMemoryTransactionalMetadata": "floe_hive.metastore",
    "HiveLocationService": "floe_hive.locations",
    "PartitionUpdateCodec": "floe_hive.updates",
    "TransactionCoordinator": "floe_hive.transactions",
    "create_access_control": "floe_hive.security",
    "Identity": "floe_hive.security",
    "HiveProcedureConfig": "floe_hive.config",
    "OpaConfig": "floe_hive.config",
    "CatalogDocument": "floe_hive.config",
    "TableHandle": "floe_hive.config",
    "PartitionUpdate": "floe_hive.config",
    "WriteInfo": "floe_hive.config",
    "make_partition_name": "floe_hive.partitions",
}


def __getattr__(name: str) -> object:
    """Lazy import of public API members."""
    if name in _LAZY_MODULES:
        import importlib

        return getattr(importlib.import_module(_LAZY_MODULES[name]), name)
    if name in __all__:
        from floe_hive import errors as errors_module

        return getattr(errors_module, name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
