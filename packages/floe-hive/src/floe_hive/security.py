"""Access control for catalog procedures.

This module provides:
- Identity: The caller a decision is made for
- AccessControl: Protocol consumed by ProcedureRegistry
- AllowAllAccessControl: Used when no policy engine is configured
- OpaAuthorizer: One Open Policy Agent request per decision
- OpaBatchAuthorizer: Filters many resources with a single request
- create_access_control: Picks the implementation from configuration

Policy errors fail closed: an unreachable or malformed policy endpoint
raises instead of allowing the operation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

from floe_hive.config import OpaConfig
from floe_hive.errors import AccessDeniedError, CatalogOperationError
from floe_hive.observability import get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


class Identity(BaseModel):
    """The user on whose behalf a procedure runs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user: str = Field(..., min_length=1)
    groups: tuple[str, ...] = Field(default=())


class AccessControl(Protocol):
    """Authorization decisions for catalog operations."""

    def check_can_execute_procedure(
        self,
        identity: Identity | None,
        schema: str,
        procedure: str,
    ) -> None: ...

    def filter_tables(
        self,
        identity: Identity | None,
        tables: Sequence[tuple[str, str]],
    ) -> list[tuple[str, str]]: ...

    def close(self) -> None: ...


class AllowAllAccessControl:
    """Allows every operation."""

    def check_can_execute_procedure(
        self,
        identity: Identity | None,
        schema: str,
        procedure: str,
    ) -> None:
        return None

    def filter_tables(
        self,
        identity: Identity | None,
        tables: Sequence[tuple[str, str]],
    ) -> list[tuple[str, str]]:
        return list(tables)

    def close(self) -> None:
        return None


class OpaAuthorizer:
    """Access control backed by an Open Policy Agent decision endpoint.

    Every decision is a POST of ``{"input": {"context": ..., "action": ...}}``
    to ``opa_uri``; the response must be ``{"result": true|false}``.

    Attributes:
        config: OPA endpoint configuration.

    Example:
        >>> authorizer = OpaAuthorizer(OpaConfig(opa_uri="http://opa:8181/v1/data/floe/allow"))
        >>> authorizer.check_can_execute_procedure(Identity(user="alice"), "system", "create_empty_partition")
    """

    def __init__(
        self,
        config: OpaConfig,
        *,
        client: httpx.Client | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        """Initialize OpaAuthorizer.

        Args:
            config: OPA endpoint configuration.
            client: Optional httpx client (defaults to one with the configured
                timeout, owned and closed by this authorizer).
            logger: Optional structlog logger.
        """
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.timeout_seconds)
        self._logger = logger or get_logger()

    def check_can_execute_procedure(
        self,
        identity: Identity | None,
        schema: str,
        procedure: str,
    ) -> None:
        """Raise AccessDeniedError unless the policy allows the call."""
        resource = f"{schema}.{procedure}"
        action = {
            "operation": "ExecuteProcedure",
            "resource": {"function": {"schemaName": schema, "functionName": procedure}},
        }
        if not self._allowed(identity, action):
            self._logger.warning(
                "access_denied",
                operation="ExecuteProcedure",
                resource=resource,
                user=identity.user if identity else None,
            )
            raise AccessDeniedError("execute procedure", resource)

    def filter_tables(
        self,
        identity: Identity | None,
        tables: Sequence[tuple[str, str]],
    ) -> list[tuple[str, str]]:
        """Return the tables the identity may see, one request per table."""
        return [
            table
            for table in tables
            if self._allowed(identity, {"operation": "FilterTables", "resource": _table_resource(table)})
        ]

    def close(self) -> None:
        """Close the HTTP client if this authorizer created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager - close the HTTP client."""
        self.close()

    def _allowed(self, identity: Identity | None, action: dict[str, Any]) -> bool:
        result = self._query(self.config.opa_uri, identity, action)
        if not isinstance(result, bool):
            msg = "OPA response result is not a boolean"
            raise CatalogOperationError(msg, operation="opa_query", cause=repr(result))
        return result

    def _query(self, uri: str, identity: Identity | None, action: dict[str, Any]) -> Any:
        payload = {"input": {"context": _context(identity), "action": action}}
        try:
            response = self._client.post(uri, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogOperationError(
                "OPA policy query failed",
                operation="opa_query",
                cause=str(exc),
            ) from exc
        if not isinstance(body, dict) or "result" not in body:
            msg = "OPA response has no result"
            raise CatalogOperationError(msg, operation="opa_query")
        return body["result"]


class OpaBatchAuthorizer(OpaAuthorizer):
    """OPA access control that filters resources in one batch request.

    Filtering posts all resources under ``filterResources`` to
    ``opa_batch_uri``; the response lists allowed indices as
    ``{"result": [0, 2]}``. Single decisions still use ``opa_uri``.
    """

    def __init__(
        self,
        config: OpaConfig,
        *,
        client: httpx.Client | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        if config.opa_batch_uri is None:
            msg = "OpaBatchAuthorizer requires opa_batch_uri"
            raise ValueError(msg)
        super().__init__(config, client=client, logger=logger)
        self._batch_uri = config.opa_batch_uri

    def filter_tables(
        self,
        identity: Identity | None,
        tables: Sequence[tuple[str, str]],
    ) -> list[tuple[str, str]]:
        """Return the tables the identity may see, in one request."""
        if not tables:
            return []
        action = {
            "operation": "FilterTables",
            "filterResources": [_table_resource(table) for table in tables],
        }
        result = self._query(self._batch_uri, identity, action)
        if not isinstance(result, list) or not all(isinstance(i, int) for i in result):
            msg = "OPA batch response result is not a list of indices"
            raise CatalogOperationError(msg, operation="opa_query", cause=repr(result))
        allowed = set(result)
        return [table for i, table in enumerate(tables) if i in allowed]


def create_access_control(
    config: OpaConfig | None,
    *,
    client: httpx.Client | None = None,
) -> AccessControl:
    """Create the access control implementation for a configuration.

    Args:
        config: OPA configuration, or None to allow everything.
        client: Optional httpx client shared by the authorizer.

    Returns:
        OpaBatchAuthorizer when a batch endpoint is configured,
        OpaAuthorizer otherwise, AllowAllAccessControl without config.
    """
    if config is None:
        return AllowAllAccessControl()
    if config.opa_batch_uri is not None:
        return OpaBatchAuthorizer(config, client=client)
    return OpaAuthorizer(config, client=client)


def _context(identity: Identity | None) -> dict[str, Any]:
    if identity is None:
        return {"identity": None}
    return {"identity": {"user": identity.user, "groups": list(identity.groups)}}


def _table_resource(table: tuple[str, str]) -> dict[str, Any]:
    schema, name = table
    return {"table": {"schemaName": schema, "tableName": name}}
