"""Unit tests for access control and the authorizer factory."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from floe_hive.config import OpaConfig
from floe_hive.errors import AccessDeniedError, CatalogOperationError
from floe_hive.security import (
    AllowAllAccessControl,
    Identity,
    OpaAuthorizer,
    OpaBatchAuthorizer,
    create_access_control,
)

OPA_URI = "http://opa:8181/v1/data/floe/allow"
OPA_BATCH_URI = "http://opa:8181/v1/data/floe/batch"
TABLES = [("web", "sales"), ("web", "orders"), ("app", "events")]


def _client(
    respond: Callable[[httpx.Request], httpx.Response],
    requests: list[httpx.Request],
) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return respond(request)

    return httpx.Client(transport=httpx.MockTransport(handler))


def _body(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)


class TestCreateAccessControl:
    """Tests for the configuration-driven factory."""

    def test_no_config_allows_all(self) -> None:
        """Test missing configuration yields AllowAllAccessControl."""
        assert isinstance(create_access_control(None), AllowAllAccessControl)

    def test_single_authorizer_without_batch_uri(self) -> None:
        """Test opa_uri alone yields the single-request authorizer."""
        control = create_access_control(OpaConfig(opa_uri=OPA_URI))

        assert type(control) is OpaAuthorizer

    def test_batch_authorizer_with_batch_uri(self) -> None:
        """Test a batch endpoint yields the batch authorizer."""
        control = create_access_control(OpaConfig(opa_uri=OPA_URI, opa_batch_uri=OPA_BATCH_URI))

        assert isinstance(control, OpaBatchAuthorizer)

    def test_batch_authorizer_requires_batch_uri(self) -> None:
        """Test the batch authorizer cannot be built without a batch endpoint."""
        with pytest.raises(ValueError, match="opa_batch_uri"):
            OpaBatchAuthorizer(OpaConfig(opa_uri=OPA_URI))


class TestAllowAllAccessControl:
    """Tests for AllowAllAccessControl."""

    def test_allows_everything(self) -> None:
        """Test checks pass and filters keep every table."""
        control = AllowAllAccessControl()

        control.check_can_execute_procedure(None, "system", "create_empty_partition")
        assert control.filter_tables(None, TABLES) == TABLES


class TestOpaAuthorizer:
    """Tests for OpaAuthorizer."""

    def test_allowed_procedure(self) -> None:
        """Test an allowed call sends the identity and procedure resource."""
        requests: list[httpx.Request] = []
        authorizer = OpaAuthorizer(
            OpaConfig(opa_uri=OPA_URI),
            client=_client(lambda r: httpx.Response(200, json={"result": True}), requests),
        )

        authorizer.check_can_execute_procedure(
            Identity(user="alice", groups=("eng",)),
            "system",
            "create_empty_partition",
        )

        (request,) = requests
        assert str(request.url) == OPA_URI
        body = _body(request)
        assert body["input"]["context"] == {"identity": {"user": "alice", "groups": ["eng"]}}
        assert body["input"]["action"] == {
            "operation": "ExecuteProcedure",
            "resource": {
                "function": {"schemaName": "system", "functionName": "create_empty_partition"}
            },
        }

    def test_denied_procedure(self) -> None:
        """Test a false decision raises AccessDeniedError."""
        authorizer = OpaAuthorizer(
            OpaConfig(opa_uri=OPA_URI),
            client=_client(lambda r: httpx.Response(200, json={"result": False}), []),
        )

        with pytest.raises(AccessDeniedError, match="system.create_empty_partition"):
            authorizer.check_can_execute_procedure(Identity(user="bob"), "system", "create_empty_partition")

    def test_filter_tables_one_request_each(self) -> None:
        """Test filtering sends one request per table."""
        requests: list[httpx.Request] = []

        def respond(request: httpx.Request) -> httpx.Response:
            table = _body(request)["input"]["action"]["resource"]["table"]
            return httpx.Response(200, json={"result": table["schemaName"] == "web"})

        authorizer = OpaAuthorizer(OpaConfig(opa_uri=OPA_URI), client=_client(respond, requests))

        assert authorizer.filter_tables(None, TABLES) == [("web", "sales"), ("web", "orders")]
        assert len(requests) == 3

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="boom"),
            httpx.Response(200, json={"unexpected": True}),
            httpx.Response(200, json={"result": "yes"}),
            httpx.Response(200, text="not json"),
        ],
    )
    def test_bad_responses_fail_closed(self, response: httpx.Response) -> None:
        """Test errors and malformed decisions raise instead of allowing."""
        authorizer = OpaAuthorizer(
            OpaConfig(opa_uri=OPA_URI),
            client=_client(lambda r: response, []),
        )

        with pytest.raises(CatalogOperationError) as exc_info:
            authorizer.check_can_execute_procedure(None, "system", "create_empty_partition")

        assert exc_info.value.operation == "opa_query"

    def test_transport_error_fails_closed(self) -> None:
        """Test an unreachable endpoint raises CatalogOperationError."""

        def respond(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        authorizer = OpaAuthorizer(OpaConfig(opa_uri=OPA_URI), client=_client(respond, []))

        with pytest.raises(CatalogOperationError):
            authorizer.check_can_execute_procedure(None, "system", "create_empty_partition")


class TestOpaBatchAuthorizer:
    """Tests for OpaBatchAuthorizer."""

    @pytest.fixture
    def config(self) -> OpaConfig:
        """Create a config with both endpoints."""
        return OpaConfig(opa_uri=OPA_URI, opa_batch_uri=OPA_BATCH_URI)

    def test_filter_tables_single_request(self, config: OpaConfig) -> None:
        """Test filtering posts every table to the batch endpoint at once."""
        requests: list[httpx.Request] = []
        authorizer = OpaBatchAuthorizer(
            config,
            client=_client(lambda r: httpx.Response(200, json={"result": [0, 2]}), requests),
        )

        allowed = authorizer.filter_tables(Identity(user="alice"), TABLES)

        assert allowed == [("web", "sales"), ("app", "events")]
        (request,) = requests
        assert str(request.url) == OPA_BATCH_URI
        resources = _body(request)["input"]["action"]["filterResources"]
        assert [r["table"]["tableName"] for r in resources] == ["sales", "orders", "events"]

    def test_empty_filter_skips_request(self, config: OpaConfig) -> None:
        """Test nothing is sent for an empty table list."""
        requests: list[httpx.Request] = []
        authorizer = OpaBatchAuthorizer(
            config,
            client=_client(lambda r: httpx.Response(200, json={"result": []}), requests),
        )

        assert authorizer.filter_tables(None, []) == []
        assert requests == []

    def test_single_decisions_use_single_endpoint(self, config: OpaConfig) -> None:
        """Test procedure checks still go to opa_uri."""
        requests: list[httpx.Request] = []
        authorizer = OpaBatchAuthorizer(
            config,
            client=_client(lambda r: httpx.Response(200, json={"result": True}), requests),
        )

        authorizer.check_can_execute_procedure(None, "system", "create_empty_partition")

        assert str(requests[0].url) == OPA_URI

    def test_malformed_batch_result(self, config: OpaConfig) -> None:
        """Test a non-list batch result raises."""
        authorizer = OpaBatchAuthorizer(
            config,
            client=_client(lambda r: httpx.Response(200, json={"result": True}), []),
        )

        with pytest.raises(CatalogOperationError):
            authorizer.filter_tables(None, TABLES)


class TestClientLifecycle:
    """Tests for closing authorizer HTTP clients."""

    def test_owned_client_closed(self) -> None:
        """Test an authorizer closes the client it created."""
        with OpaAuthorizer(OpaConfig(opa_uri=OPA_URI)) as authorizer:
            client = authorizer._client

        assert client.is_closed

    def test_injected_client_left_open(self) -> None:
        """Test a caller-supplied client is not closed."""
        client = _client(lambda r: httpx.Response(200, json={"result": True}), [])

        OpaBatchAuthorizer(OpaConfig(opa_uri=OPA_URI, opa_batch_uri=OPA_BATCH_URI), client=client).close()

        assert not client.is_closed

    def test_allow_all_close_is_noop(self) -> None:
        """Test every access control can be closed."""
        create_access_control(None).close()
