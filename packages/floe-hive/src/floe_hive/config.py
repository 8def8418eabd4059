"""Pydantic models for floe-hive.

This module provides:
- WriteMode: Enum for how new partition files reach their target
- UpdateMode: Enum for the kind of partition update
- ColumnHandle, TableHandle: Resolved table metadata
- LocationHandle, InsertTableHandle: Insert-time location data
- TransactionContext: Opaque per-invocation transaction handle
- WriteInfo: Write and target paths for one partition
- PartitionUpdate: Metadata record handed to finish_insert
- Partition: A partition as stored by the metastore
- HiveProcedureConfig: Staging directory configuration
- OpaConfig: Open Policy Agent access-control configuration
- TableDefinition, CatalogDocument: YAML catalog file schema
"""

from __future__ import annotations

import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Self

from floe_hive.partitions import make_partition_name


class WriteMode(str, Enum):
    """How files written for an insert reach the table location.

    - STAGE_ON_TMP_DIR_AND_MOVE: Write to a staging directory, move on commit
    - DIRECT_TO_TARGET_EXISTING_DIRECTORY: Write straight into the existing location
    """

    STAGE_ON_TMP_DIR_AND_MOVE = "STAGE_ON_TMP_DIR_AND_MOVE"
    DIRECT_TO_TARGET_EXISTING_DIRECTORY = "DIRECT_TO_TARGET_EXISTING_DIRECTORY"


class UpdateMode(str, Enum):
    """Kind of change a PartitionUpdate describes.

    Empty-partition registration always uses NEW.
    """

    NEW = "NEW"
    APPEND = "APPEND"
    OVERWRITE = "OVERWRITE"


class ColumnHandle(BaseModel):
    """A partition column of a resolved table."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Column name")
    type: str = Field(default="string", description="Declared column type")
    ordinal: int = Field(default=0, ge=0, description="Position in the partition spec")


class TableHandle(BaseModel):
    """A table resolved from the catalog.

    Attributes:
        schema_name: Schema (database) the table lives in.
        table_name: Table name.
        partition_columns: Partition columns in declared order.
        location: Root storage location of the table.

    Example:
        >>> handle = TableHandle(
        ...     schema_name="web",
        ...     table_name="sales",
        ...     partition_columns=[ColumnHandle(name="year"), ColumnHandle(name="region", ordinal=1)],
        ...     location="s3://warehouse/web/sales",
        ... )
        >>> handle.partition_column_names
        ['year', 'region']
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_name: str = Field(..., min_length=1)
    table_name: str = Field(..., min_length=1)
    partition_columns: tuple[ColumnHandle, ...] = Field(default=())
    location: str = Field(..., min_length=1, description="Table root location")

    @property
    def partition_column_names(self) -> list[str]:
        """Return partition column names in declared order."""
        return [column.name for column in self.partition_columns]

    @property
    def qualified_name(self) -> str:
        """Return "schema.table"."""
        return f"{self.schema_name}.{self.table_name}"


class LocationHandle(BaseModel):
    """Target and write locations chosen when an insert begins."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_path: str = Field(..., min_length=1)
    write_path: str = Field(..., min_length=1)
    write_mode: WriteMode


class InsertTableHandle(BaseModel):
    """Handle returned by begin_insert, consumed by the location service."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    table: TableHandle
    location_handle: LocationHandle


class TransactionContext(BaseModel):
    """Opaque handle identifying one insert transaction.

    Created by begin_insert and threaded through finish_insert and commit.
    Never shared across procedure invocations.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    transaction_id: str = Field(default_factory=lambda: uuid.uuid4().hex)


class WriteInfo(BaseModel):
    """Staging and final locations for a single partition."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    write_path: str
    target_path: str
    write_mode: WriteMode


class PartitionUpdate(BaseModel):
    """Metadata describing the files and statistics of one partition.

    Serialized with camelCase keys in declaration order. The file count is
    derived from file_names so it cannot disagree with the list.

    Example:
        >>> update = PartitionUpdate(
        ...     name="year=2024",
        ...     update_mode=UpdateMode.NEW,
        ...     write_path="s3://w/t/year=2024",
        ...     target_path="s3://w/t/year=2024",
        ... )
        >>> update.file_count
        0
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str = Field(..., min_length=1, description="Canonical partition name")
    update_mode: UpdateMode
    write_path: str
    target_path: str
    file_names: tuple[str, ...] = Field(default=())
    row_count: int = Field(default=0, ge=0)
    in_memory_data_size_in_bytes: int = Field(default=0, ge=0)
    on_disk_data_size_in_bytes: int = Field(default=0, ge=0)

    @property
    def file_count(self) -> int:
        """Return the number of files in this update."""
        return len(self.file_names)

    @property
    def is_empty(self) -> bool:
        """Return True when the update carries no files and no data."""
        return (
            not self.file_names
            and self.row_count == 0
            and self.in_memory_data_size_in_bytes == 0
            and self.on_disk_data_size_in_bytes == 0
        )


class Partition(BaseModel):
    """A partition as recorded by the metastore."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_name: str
    table_name: str
    values: tuple[str, ...]
    location: str
    parameters: dict[str, str] = Field(default_factory=dict)


class HiveProcedureConfig(BaseModel):
    """Configuration for catalog procedures.

    Attributes:
        temporary_staging_directory_enabled: Stage new files in a temporary
            directory and move them on commit.
        temporary_staging_directory_path: Root of temporary staging directories.

    Example:
        >>> config = HiveProcedureConfig(temporary_staging_directory_enabled=False)
        >>> config.temporary_staging_directory_path
        '/tmp/floe-staging'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    temporary_staging_directory_enabled: bool = Field(
        default=True,
        description="Stage writes in a temporary directory before moving to the table",
    )
    temporary_staging_directory_path: str = Field(
        default="/tmp/floe-staging",
        min_length=1,
        description="Root path for temporary staging directories",
    )


class OpaConfig(BaseModel):
    """Open Policy Agent access-control configuration.

    When opa_batch_uri is set, filtering calls are sent as one batch request;
    otherwise each resource is checked individually against opa_uri.

    Example:
        >>> config = OpaConfig(opa_uri="http://opa:8181/v1/data/floe/allow")
        >>> config.opa_batch_uri is None
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    opa_uri: str = Field(..., min_length=1, description="Single-decision policy endpoint")
    opa_batch_uri: str | None = Field(
        default=None,
        description="Batch policy endpoint returning allowed resource indices",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="HTTP request timeout in seconds",
    )

    @field_validator("opa_uri", "opa_batch_uri")
    @classmethod
    def validate_http_uri(cls, v: str | None) -> str | None:
        """Validate that policy endpoints are HTTP(S) URLs."""
        if v is not None and not v.startswith(("http://", "https://")):
            msg = f"OPA endpoint must be an http(s) URL: {v}"
            raise ValueError(msg)
        return v


class TableDefinition(BaseModel):
    """A table entry in a YAML catalog file."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    schema_name: str = Field(..., min_length=1, alias="schema")
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    partition_columns: list[str] = Field(default_factory=list)
    partitions: list[list[str]] = Field(
        default_factory=list,
        description="Registered partition values, one list per partition",
    )

    @model_validator(mode="after")
    def validate_partitions(self) -> Self:
        """Validate registered partitions against the partition columns.

        Raises:
            ValueError: If a partition has the wrong number of values or
                two partitions share a name.
        """
        for values in self.partitions:
            if len(values) != len(self.partition_columns):
                msg = f"Partition {values} does not match partition columns {self.partition_columns}"
                raise ValueError(msg)
        seen: set[str] = set()
        for name in self.partition_names():
            if name in seen:
                msg = f"Duplicate partition {name} on {self.schema_name}.{self.name}"
                raise ValueError(msg)
            seen.add(name)
        return self

    def partition_names(self) -> list[str]:
        """Return canonical names of the registered partitions."""
        return [make_partition_name(self.partition_columns, values) for values in self.partitions]


class CatalogDocument(BaseModel):
    """Schema of a catalog.yaml file backing the local metastore.

    Example:
        >>> doc = CatalogDocument.model_validate({
        ...     "tables": [{
        ...         "schema": "web",
        ...         "name": "sales",
        ...         "location": "/data/web/sales",
        ...         "partition_columns": ["year", "region"],
        ...     }],
        ... })
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    procedures: HiveProcedureConfig = Field(default_factory=HiveProcedureConfig)
    access_control: OpaConfig | None = Field(default=None)
    tables: list[TableDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_tables(self) -> Self:
        """Validate that no table is listed twice.

        Raises:
            ValueError: If two entries share a schema and name.
        """
        seen: set[tuple[str, str]] = set()
        for table in self.tables:
            key = (table.schema_name, table.name)
            if key in seen:
                msg = f"Duplicate table {table.schema_name}.{table.name}"
                raise ValueError(msg)
            seen.add(key)
        return self
