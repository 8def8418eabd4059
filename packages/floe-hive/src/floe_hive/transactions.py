"""Insert transaction coordination.

TransactionCoordinator drives one insert through begin, finish and commit
against a TransactionalMetadata collaborator:

    IDLE -> BEGAN -> FINISHED -> COMMITTED
              \\         \\
               +---------+--> ABORTED

No compensating call is made on failure. The collaborator guarantees that
a transaction which never reaches commit leaves nothing visible.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from floe_hive.errors import (
    CatalogOperationError,
    FloeStorageError,
    IllegalTransactionStateError,
    TransactionAbortedError,
)
from floe_hive.observability import get_logger, transaction_step

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from contextlib import AbstractContextManager

    from structlog.stdlib import BoundLogger

    from floe_hive.config import InsertTableHandle, TableHandle, TransactionContext
    from floe_hive.metastore import TransactionalMetadata

T = TypeVar("T")


class TransactionState(str, Enum):
    """Lifecycle states of an insert transaction."""

    IDLE = "idle"
    BEGAN = "began"
    FINISHED = "finished"
    COMMITTED = "committed"
    ABORTED = "aborted"


class TransactionCoordinator:
    """Run begin, finish and commit strictly in order for one invocation.

    A coordinator is single-use: it is created per procedure invocation and
    its TransactionContext is never handed to anyone else.

    Attributes:
        state: Current TransactionState.

    Example:
        >>> coordinator = TransactionCoordinator(metadata)
        >>> handle = coordinator.begin(table)
        >>> coordinator.run_in_transaction("allocate", lambda: allocate(handle))
        >>> coordinator.finish(payload)
        >>> coordinator.commit()
    """

    def __init__(
        self,
        metadata: TransactionalMetadata,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._metadata = metadata
        self._logger = logger or get_logger()
        self._state = TransactionState.IDLE
        self._table: TableHandle | None = None
        self._handle: InsertTableHandle | None = None
        self._context: TransactionContext | None = None

    @property
    def state(self) -> TransactionState:
        """Return the current transaction state."""
        return self._state

    @property
    def transaction_id(self) -> str | None:
        """Return the transaction identifier once begun."""
        return self._context.transaction_id if self._context else None

    def begin(self, table: TableHandle) -> InsertTableHandle:
        """Begin an insert on the table.

        Returns:
            Insert handle for location allocation.

        Raises:
            IllegalTransactionStateError: If not IDLE.
            CatalogOperationError: If begin_insert fails with a foreign error.
                The state stays IDLE since nothing began.
        """
        self._require(TransactionState.IDLE, "begin")
        with transaction_step("begin_insert", table=table.qualified_name):
            try:
                handle, context = self._metadata.begin_insert(table)
            except FloeStorageError:
                raise
            except Exception as exc:
                raise CatalogOperationError(
                    f"Failed to begin insert on {table.qualified_name}",
                    operation="begin_insert",
                    cause=str(exc),
                ) from exc
        self._table = table
        self._handle = handle
        self._context = context
        self._state = TransactionState.BEGAN
        return handle

    def run_in_transaction(self, stage: str, action: Callable[[], T]) -> T:
        """Run work that belongs to the open transaction.

        Any failure aborts the transaction.

        Args:
            stage: Name reported if the action fails.
            action: Zero-argument callable.

        Returns:
            The action's result.

        Raises:
            IllegalTransactionStateError: If not BEGAN.
            TransactionAbortedError: If the action raises.
        """
        self._require(TransactionState.BEGAN, stage)
        with self._aborting(stage):
            return action()

    def finish(self, fragment: bytes) -> None:
        """Hand exactly one serialized partition update to finish_insert.

        The statistics list is always empty.

        Raises:
            IllegalTransactionStateError: If not BEGAN.
            TransactionAbortedError: If finish_insert fails.
        """
        self._require(TransactionState.BEGAN, "finish")
        assert self._context is not None and self._handle is not None
        with self._aborting("finish"), self._step("finish_insert"):
            self._metadata.finish_insert(self._context, self._handle, [fragment], [])
        self._state = TransactionState.FINISHED

    def commit(self) -> None:
        """Commit the transaction.

        Raises:
            IllegalTransactionStateError: If not FINISHED.
            TransactionAbortedError: If commit fails.
        """
        self._require(TransactionState.FINISHED, "commit")
        assert self._context is not None
        with self._aborting("commit"), self._step("commit"):
            self._metadata.commit(self._context)
        self._state = TransactionState.COMMITTED

    def _require(self, expected: TransactionState, attempted: str) -> None:
        if self._state is not expected:
            raise IllegalTransactionStateError(self._state.value, attempted)

    def _step(self, step: str) -> AbstractContextManager[object]:
        return transaction_step(
            step,
            transaction_id=self.transaction_id,
            table=self._table.qualified_name if self._table else None,
        )

    @contextmanager
    def _aborting(self, stage: str) -> Iterator[None]:
        try:
            yield
        except Exception as exc:
            raise self._abort(stage, exc) from exc

    def _abort(self, stage: str, exc: Exception) -> TransactionAbortedError:
        self._state = TransactionState.ABORTED
        self._logger.warning(
            "transaction_aborted",
            stage=stage,
            transaction_id=self.transaction_id,
            error=str(exc),
        )
        return TransactionAbortedError(
            f"Transaction aborted during {stage}",
            stage=stage,
            transaction_id=self.transaction_id,
            cause=str(exc),
        )

