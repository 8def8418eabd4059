"""Unit tests for the floe tables commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from floe_cli.main import cli


class TestListTables:
    """Tests for `floe tables list`."""

    def test_lists_all_tables(self, cli_runner: CliRunner, catalog_file: Path) -> None:
        """Test every table is listed without access control."""
        result = cli_runner.invoke(cli, ["tables", "list", "--catalog", str(catalog_file)])

        assert result.exit_code == 0, result.output
        assert "web.sales" in result.output
        assert "web.pages" in result.output

    def test_empty_catalog(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test an empty catalog reports no tables."""
        path = tmp_path / "catalog.yaml"
        path.write_text("tables: []\n")

        result = cli_runner.invoke(cli, ["tables", "list", "--catalog", str(path)])

        assert result.exit_code == 0
        assert "No tables" in result.output

    def test_unreachable_policy_endpoint(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        catalog_data: dict[str, Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a failing policy query is a system error."""
        import httpx

        from floe_hive import security

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        original = security.create_access_control

        def with_mock_client(config: Any, *, client: Any = None) -> Any:
            return original(config, client=httpx.Client(transport=httpx.MockTransport(refuse)))

        monkeypatch.setattr(security, "create_access_control", with_mock_client)
        path = tmp_path / "catalog.yaml"
        catalog_data["access_control"] = {"opa_uri": "http://opa:8181/v1/data/floe/allow"}
        path.write_text(yaml.safe_dump(catalog_data))

        result = cli_runner.invoke(cli, ["tables", "list", "--catalog", str(path)])

        assert result.exit_code == 2
        assert "OPA policy query failed" in result.output

    def test_duplicate_table_in_catalog(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        catalog_data: dict[str, Any],
    ) -> None:
        """Test a catalog listing a table twice is reported, not raised."""
        catalog_data["tables"].append(dict(catalog_data["tables"][0], partitions=[]))
        path = tmp_path / "catalog.yaml"
        path.write_text(yaml.safe_dump(catalog_data))

        result = cli_runner.invoke(cli, ["tables", "list", "--catalog", str(path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Duplicate table web.sales" in result.output
