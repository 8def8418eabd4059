"""Catalog file loading and procedure wiring for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError as PydanticValidationError

from floe_cli.errors import handle_file_not_found, handle_validation_error, handle_yaml_error
from floe_hive.config import CatalogDocument
from floe_hive.metastore import InMemoryMetastore
from floe_hive.procedures import CreateEmptyPartitionProcedure, ProcedureRegistry
from floe_hive.security import Identity, create_access_control

if TYPE_CHECKING:
    from floe_hive.security import AccessControl

DEFAULT_CATALOG_PATH = "./catalog.yaml"


def load_catalog(file_path: str) -> CatalogDocument:
    """Read and validate a catalog file.

    Raises:
        CLIError: If the file is missing, is not YAML, or fails validation.
    """
    path = Path(file_path)
    if not path.exists():
        handle_file_not_found(file_path)
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        handle_yaml_error(exc, file_path)
    try:
        return CatalogDocument.model_validate(data)
    except PydanticValidationError as exc:
        handle_validation_error(exc, file_path)


def save_catalog(file_path: str, document: CatalogDocument) -> None:
    """Write a catalog document back to disk as YAML."""
    data = document.model_dump(mode="json", by_alias=True, exclude_none=True)
    Path(file_path).write_text(yaml.safe_dump(data, sort_keys=False))


def build_registry(
    document: CatalogDocument,
    metastore: InMemoryMetastore,
) -> tuple[ProcedureRegistry, AccessControl]:
    """Create a registry with the catalog procedures registered.

    Returns:
        The registry and the access control it checks against.
    """
    access_control = create_access_control(document.access_control)
    registry = ProcedureRegistry(access_control)
    registry.register(CreateEmptyPartitionProcedure.in_memory(metastore, document.procedures).get())
    return registry, access_control


def identity_for(user: str | None) -> Identity | None:
    """Return the caller identity for a --user option."""
    return Identity(user=user) if user else None
