"""Shared test fixtures for floe-cli tests.

Provides CliRunner fixtures and catalog file helpers for testing
CLI commands.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

CATALOG_FILENAME = "catalog.yaml"
SALES_LOCATION = "/data/web/sales"


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner.

    Returns:
        CliRunner instance for testing CLI commands.
    """
    return CliRunner()


@pytest.fixture
def isolated_runner(cli_runner: CliRunner) -> Generator[CliRunner, None, None]:
    """Create a Click test runner with an isolated filesystem.

    Yields:
        CliRunner instance with isolated filesystem.
    """
    with cli_runner.isolated_filesystem():
        yield cli_runner


@pytest.fixture
def catalog_data() -> dict[str, Any]:
    """Catalog with one partitioned and one unpartitioned table."""
    return {
        "procedures": {"temporary_staging_directory_enabled": False},
        "tables": [
            {
                "schema": "web",
                "name": "sales",
                "location": SALES_LOCATION,
                "partition_columns": ["year", "region"],
                "partitions": [["2023", "east"]],
            },
            {
                "schema": "web",
                "name": "pages",
                "location": "/data/web/pages",
            },
        ],
    }


@pytest.fixture
def catalog_file(tmp_path: Path, catalog_data: dict[str, Any]) -> Path:
    """Write the catalog fixture to a temporary catalog.yaml.

    Returns:
        Path to the catalog file.
    """
    path = tmp_path / CATALOG_FILENAME
    path.write_text(yaml.safe_dump(catalog_data, sort_keys=False))
    return path

