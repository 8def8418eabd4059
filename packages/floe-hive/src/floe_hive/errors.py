"""Custom exceptions for floe-hive.

This module defines the exception hierarchy:
- FloeStorageError (base)
- InvalidProcedureArgumentError
- PartitionExistsError
- TableNotFoundError
- CatalogOperationError
- TransactionAbortedError
- IllegalTransactionStateError
- ProcedureNotFoundError
- AccessDeniedError
"""

from __future__ import annotations

__all__ = [
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


class FloeStorageError(Exception):
    """Base exception for all floe-hive catalog operations.

    Attributes:
        message: Human-readable error description.
        details: Optional additional context about the error.

    Example:
        >>> try:
        ...     procedure.create_empty_partition("web", "sales", ["year"], ["2024"])
        ... except FloeStorageError as e:
        ...     print(f"Catalog error: {e}")
    """

    def __init__(self, message: str, *, details: dict[str, str] | None = None) -> None:
        """Initialize FloeStorageError.

        Args:
            message: Human-readable error description.
            details: Optional additional context about the error.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details if present."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class InvalidProcedureArgumentError(FloeStorageError):
    """A procedure was called with arguments that do not fit the target table.

    Raised when:
    - Partition column names differ from the table's partition columns
      (wrong names, wrong order or wrong count)
    - The number of partition values differs from the number of columns
    - A required argument is missing or has the wrong type

    Always raised before any catalog or storage side effect.
    """

    def __init__(
        self,
        message: str,
        *,
        argument: str | None = None,
    ) -> None:
        """Initialize InvalidProcedureArgumentError.

        Args:
            message: Human-readable error description.
            argument: Name of the offending procedure argument.
        """
        details: dict[str, str] = {}
        if argument:
            details["argument"] = argument
        super().__init__(message, details=details)
        self.argument = argument


class PartitionExistsError(FloeStorageError):
    """Partition already exists in the catalog.

    Example:
        >>> try:
        ...     procedure.create_empty_partition("web", "sales", ["year"], ["2024"])
        ... except PartitionExistsError as e:
        ...     print(f"Partition exists: {e.partition_name}")
    """

    def __init__(
        self,
        schema_name: str,
        table_name: str,
        partition_name: str,
        message: str | None = None,
    ) -> None:
        """Initialize PartitionExistsError.

        Args:
            schema_name: Schema of the partitioned table.
            table_name: Name of the partitioned table.
            partition_name: Canonical name of the existing partition.
            message: Optional custom error message.
        """
        msg = message or "Partition already exists"
        super().__init__(
            msg,
            details={
                "table": f"{schema_name}.{table_name}",
                "partition": partition_name,
            },
        )
        self.schema_name = schema_name
        self.table_name = table_name
        self.partition_name = partition_name


class TableNotFoundError(FloeStorageError):
    """Table not found in the catalog."""

    def __init__(
        self,
        table: str,
        message: str | None = None,
    ) -> None:
        """Initialize TableNotFoundError.

        Args:
            table: The table identifier that was not found.
            message: Optional custom error message.
        """
        msg = message or f"Table not found: {table}"
        super().__init__(msg, details={"table": table})
        self.table = table


class CatalogOperationError(FloeStorageError):
    """A catalog collaborator failed outside of a transaction.

    Raised when the table resolver or the metastore lookup raises something
    other than a floe-hive error (network, permission, storage). The original
    exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str = "Catalog operation failed",
        *,
        operation: str | None = None,
        cause: str | None = None,
    ) -> None:
        """Initialize CatalogOperationError.

        Args:
            message: Human-readable error description.
            operation: The collaborator call that failed.
            cause: The underlying cause of the failure.
        """
        details: dict[str, str] = {}
        if operation:
            details["operation"] = operation
        if cause:
            details["cause"] = cause
        super().__init__(message, details=details)
        self.operation = operation
        self.cause = cause


class TransactionAbortedError(FloeStorageError):
    """An insert transaction failed after it began.

    No compensating action is issued. The metastore is responsible for
    leaving no partial partition visible when commit is never reached.

    Attributes:
        stage: Step that failed (allocate, finish, commit).
        cause: String form of the underlying error.
    """

    def __init__(
        self,
        message: str = "Transaction aborted",
        *,
        stage: str | None = None,
        transaction_id: str | None = None,
        cause: str | None = None,
    ) -> None:
        """Initialize TransactionAbortedError.

        Args:
            message: Human-readable error description.
            stage: The transaction step that failed.
            transaction_id: Identifier of the abandoned transaction.
            cause: The underlying cause of the failure.
        """
        details: dict[str, str] = {}
        if stage:
            details["stage"] = stage
        if transaction_id:
            details["transaction_id"] = transaction_id
        if cause:
            details["cause"] = cause
        super().__init__(message, details=details)
        self.stage = stage
        self.transaction_id = transaction_id
        self.cause = cause


class IllegalTransactionStateError(FloeStorageError):
    """A transaction step was invoked out of order."""

    def __init__(self, current: str, attempted: str) -> None:
        """Initialize IllegalTransactionStateError.

        Args:
            current: State the coordinator is in.
            attempted: Step that was attempted.
        """
        super().__init__(
            f"Cannot {attempted} a transaction in state {current}",
            details={"state": current, "step": attempted},
        )
        self.current = current
        self.attempted = attempted


class ProcedureNotFoundError(FloeStorageError):
    """No procedure is registered under the requested name."""

    def __init__(self, procedure: str) -> None:
        """Initialize ProcedureNotFoundError.

        Args:
            procedure: Qualified procedure name (schema.name).
        """
        super().__init__(f"Procedure not registered: {procedure}", details={"procedure": procedure})
        self.procedure = procedure


class AccessDeniedError(FloeStorageError):
    """The access-control plugin refused an operation.

    Security:
        Only the operation and resource are reported. The identity that was
        refused is logged, not carried in the exception.
    """

    def __init__(
        self,
        operation: str,
        resource: str,
        message: str | None = None,
    ) -> None:
        """Initialize AccessDeniedError.

        Args:
            operation: Operation that was refused.
            resource: Resource the operation targeted.
            message: Optional custom error message.
        """
        msg = message or f"Access denied: cannot {operation} {resource}"
        super().__init__(msg, details={"operation": operation, "resource": resource})
        self.operation = operation
        self.resource = resource
