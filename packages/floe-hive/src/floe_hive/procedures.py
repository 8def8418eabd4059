"""Catalog procedures and their registry.

This module provides:
- ArgumentType / ProcedureArgument / Procedure: procedure signatures
- ProcedureRegistry: name -> (argument schema, handler) dispatch
- CreateEmptyPartitionProcedure: system.create_empty_partition

Example:
    >>> metastore = InMemoryMetastore()
    >>> metastore.create_table("web", "sales", ["year", "region"], "/data/web/sales")
    >>> procedure = CreateEmptyPartitionProcedure.in_memory(metastore)
    >>> registry = ProcedureRegistry()
    >>> registry.register(procedure.get())
    >>> registry.call("system", "create_empty_partition", {
    ...     "schema_name": "web",
    ...     "table_name": "sales",
    ...     "partition_columns": ["year", "region"],
    ...     "partition_values": ["2024", "west"],
    ... })
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from floe_hive.errors import (
    CatalogOperationError,
    FloeStorageError,
    InvalidProcedureArgumentError,
    PartitionExistsError,
    ProcedureNotFoundError,
)
from floe_hive.locations import HiveLocationService
from floe_hive.observability import get_logger, log_partition_registered, procedure_operation
from floe_hive.partitions import make_partition_name, validate_partition_columns
from floe_hive.security import AllowAllAccessControl
from floe_hive.transactions import TransactionCoordinator
from floe_hive.updates import PartitionUpdateCodec, build_empty_partition_update

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_hive.config import HiveProcedureConfig
    from floe_hive.locations import LocationService
    from floe_hive.metastore import InMemoryMetastore, Metastore, TransactionalMetadata
    from floe_hive.security import AccessControl, Identity

T = TypeVar("T")


class ArgumentType(str, Enum):
    """SQL types accepted by procedure arguments."""

    VARCHAR = "varchar"
    ARRAY_VARCHAR = "array(varchar)"

    def accepts(self, value: Any) -> bool:
        """Return True if value is a valid Python value for this type."""
        if self is ArgumentType.VARCHAR:
            return isinstance(value, str)
        return (
            isinstance(value, Sequence)
            and not isinstance(value, (str, bytes))
            and all(isinstance(item, str) for item in value)
        )


@dataclass(frozen=True)
class ProcedureArgument:
    """A named, typed procedure argument."""

    name: str
    type: ArgumentType


@dataclass(frozen=True)
class Procedure:
    """A callable catalog procedure.

    Attributes:
        schema: Schema the procedure is registered under (e.g. "system").
        name: Procedure name.
        arguments: Ordered argument signature.
        handler: Callable receiving the arguments as keywords.
    """

    schema: str
    name: str
    arguments: tuple[ProcedureArgument, ...]
    handler: Callable[..., None]

    @property
    def qualified_name(self) -> str:
        """Return "schema.name"."""
        return f"{self.schema}.{self.name}"

    def signature(self) -> str:
        """Return a human-readable signature."""
        args = ", ".join(f"{arg.name} {arg.type.value}" for arg in self.arguments)
        return f"{self.qualified_name}({args})"

    def bind(self, arguments: Mapping[str, Any] | Sequence[Any]) -> dict[str, Any]:
        """Match call arguments to the signature.

        Args:
            arguments: Named arguments, or positional arguments in signature order.

        Returns:
            Keyword arguments for the handler.

        Raises:
            InvalidProcedureArgumentError: On missing, unknown or mistyped arguments.
        """
        if isinstance(arguments, Mapping):
            named = dict(arguments)
        else:
            if len(arguments) > len(self.arguments):
                msg = f"Too many arguments for procedure {self.signature()}"
                raise InvalidProcedureArgumentError(msg)
            named = {arg.name: value for arg, value in zip(self.arguments, arguments)}

        expected = {arg.name for arg in self.arguments}
        unknown = sorted(set(named) - expected)
        if unknown:
            msg = f"Unknown argument(s) for procedure {self.qualified_name}: {unknown}"
            raise InvalidProcedureArgumentError(msg, argument=unknown[0])

        bound: dict[str, Any] = {}
        for arg in self.arguments:
            if arg.name not in named or named[arg.name] is None:
                msg = f"Required procedure argument '{arg.name}' is missing"
                raise InvalidProcedureArgumentError(msg, argument=arg.name)
            value = named[arg.name]
            if not arg.type.accepts(value):
                msg = f"Procedure argument '{arg.name}' must be of type {arg.type.value}"
                raise InvalidProcedureArgumentError(msg, argument=arg.name)
            bound[arg.name] = list(value) if arg.type is ArgumentType.ARRAY_VARCHAR else value
        return bound


class ProcedureRegistry:
    """Registry dispatching procedure calls by qualified name.

    Access control is checked before each call.
    """

    def __init__(
        self,
        access_control: AccessControl | None = None,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._procedures: dict[tuple[str, str], Procedure] = {}
        self._access_control = access_control or AllowAllAccessControl()
        self._logger = logger or get_logger()

    def register(self, procedure: Procedure) -> None:
        """Register a procedure.

        Raises:
            ValueError: If a procedure with the same qualified name exists.
        """
        key = (procedure.schema, procedure.name)
        if key in self._procedures:
            msg = f"Procedure already registered: {procedure.qualified_name}"
            raise ValueError(msg)
        self._procedures[key] = procedure
        self._logger.debug("procedure_registered", procedure=procedure.qualified_name)

    def get(self, schema: str, name: str) -> Procedure:
        """Return a registered procedure.

        Raises:
            ProcedureNotFoundError: If nothing is registered under the name.
        """
        procedure = self._procedures.get((schema, name))
        if procedure is None:
            raise ProcedureNotFoundError(f"{schema}.{name}")
        return procedure

    def list_procedures(self) -> list[Procedure]:
        """Return registered procedures ordered by qualified name."""
        return [self._procedures[key] for key in sorted(self._procedures)]

    def call(
        self,
        schema: str,
        name: str,
        arguments: Mapping[str, Any] | Sequence[Any],
        *,
        identity: Identity | None = None,
    ) -> None:
        """Check access, bind arguments and invoke a procedure.

        Raises:
            ProcedureNotFoundError: If the procedure is not registered.
            AccessDeniedError: If access control refuses the call.
            InvalidProcedureArgumentError: If arguments do not bind.
        """
        procedure = self.get(schema, name)
        self._access_control.check_can_execute_procedure(identity, schema, name)
        procedure.handler(**procedure.bind(arguments))


class CreateEmptyPartitionProcedure:
    """Register a new partition without any files on an existing table.

    Steps, in order:
    1. Resolve the table and check the caller's partition columns match
       the table's partition columns exactly, including order.
    2. Look the partition up; fail if it already exists.
    3. Begin an insert, allocate write and target locations for the
       partition, finish the insert with one empty NEW update and commit.

    No lock spans steps 2 and 3. Two concurrent calls for the same
    partition can both pass step 2; uniqueness is left to the metastore.

    Example:
        >>> procedure = CreateEmptyPartitionProcedure(
        ...     metadata_factory=lambda: InMemoryTransactionalMetadata(metastore),
        ...     metastore=metastore,
        ...     location_service=HiveLocationService(),
        ... )
        >>> procedure.create_empty_partition("web", "sales", ["year", "region"], ["2024", "west"])
    """

    SCHEMA = "system"
    NAME = "create_empty_partition"
    ARGUMENTS = (
        ProcedureArgument("schema_name", ArgumentType.VARCHAR),
        ProcedureArgument("table_name", ArgumentType.VARCHAR),
        ProcedureArgument("partition_columns", ArgumentType.ARRAY_VARCHAR),
        ProcedureArgument("partition_values", ArgumentType.ARRAY_VARCHAR),
    )

    def __init__(
        self,
        metadata_factory: Callable[[], TransactionalMetadata],
        metastore: Metastore,
        location_service: LocationService,
        codec: PartitionUpdateCodec | None = None,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        """Initialize CreateEmptyPartitionProcedure.

        Args:
            metadata_factory: Returns a fresh TransactionalMetadata per call.
            metastore: Partition lookup collaborator.
            location_service: Partition location allocator.
            codec: Partition update codec.
            logger: Optional structlog logger.
        """
        self._metadata_factory = metadata_factory
        self._metastore = metastore
        self._location_service = location_service
        self._codec = codec or PartitionUpdateCodec()
        self._logger = logger or get_logger()

    @classmethod
    def in_memory(
        cls,
        metastore: InMemoryMetastore,
        config: HiveProcedureConfig | None = None,
    ) -> CreateEmptyPartitionProcedure:
        """Wire the procedure against an InMemoryMetastore."""
        from floe_hive.metastore import InMemoryTransactionalMetadata

        location_service = HiveLocationService(config)
        codec = PartitionUpdateCodec()
        return cls(
            metadata_factory=lambda: InMemoryTransactionalMetadata(metastore, location_service, codec),
            metastore=metastore,
            location_service=location_service,
            codec=codec,
        )

    def get(self) -> Procedure:
        """Return the registrable procedure bound to this instance."""
        return Procedure(
            schema=self.SCHEMA,
            name=self.NAME,
            arguments=self.ARGUMENTS,
            handler=self.create_empty_partition,
        )

    def create_empty_partition(
        self,
        schema_name: str,
        table_name: str,
        partition_columns: Sequence[str],
        partition_values: Sequence[str],
    ) -> None:
        """Register an empty partition.

        Args:
            schema_name: Schema of the target table.
            table_name: Target table.
            partition_columns: Partition column names in table order.
            partition_values: Partition values, positionally matching the columns.

        Raises:
            TableNotFoundError: If the table does not exist.
            InvalidProcedureArgumentError: If the columns or values do not
                match the table's partitioning.
            PartitionExistsError: If the partition is already registered.
            CatalogOperationError: If resolution or lookup fails.
            TransactionAbortedError: If anything fails after the insert began.
        """
        with procedure_operation(self.NAME, schema_name=schema_name, table_name=table_name) as s:
            for argument, value in (("schema_name", schema_name), ("table_name", table_name)):
                if not value:
                    msg = f"Procedure argument '{argument}' must not be empty"
                    raise InvalidProcedureArgumentError(msg, argument=argument)
            metadata = self._metadata_factory()
            table = self._collaborate(
                "get_table_handle",
                lambda: metadata.get_table_handle(schema_name, table_name),
            )

            actual_columns = table.partition_column_names
            if not actual_columns:
                msg = f"Table is not partitioned: {table.qualified_name}"
                raise InvalidProcedureArgumentError(msg, argument="table_name")
            validate_partition_columns(actual_columns, partition_columns)
            partition_name = make_partition_name(actual_columns, partition_values)
            s.set_attribute("hive.partition", partition_name)

            existing = self._collaborate(
                "get_partition",
                lambda: self._metastore.get_partition(schema_name, table_name, partition_values),
            )
            if existing is not None:
                raise PartitionExistsError(schema_name, table_name, partition_name)

            self._logger.info(
                "creating_empty_partition",
                table=table.qualified_name,
                partition=partition_name,
            )
            coordinator = TransactionCoordinator(metadata, logger=self._logger)
            insert_handle = coordinator.begin(table)
            write_info = coordinator.run_in_transaction(
                "allocate",
                lambda: self._location_service.get_partition_write_info(
                    insert_handle.location_handle,
                    partition_name,
                ),
            )
            update = build_empty_partition_update(partition_name, write_info)
            coordinator.finish(self._codec.to_json_bytes(update))
            coordinator.commit()

            log_partition_registered(
                table=table.qualified_name,
                partition_name=partition_name,
                target_path=write_info.target_path,
                transaction_id=coordinator.transaction_id or "",
            )

    def _collaborate(self, operation: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except FloeStorageError:
            raise
        except Exception as exc:
            raise CatalogOperationError(
                f"Catalog call {operation} failed",
                operation=operation,
                cause=str(exc),
            ) from exc
