"""CLI error handling for floe-cli.

This module wraps floe-hive exceptions and configuration errors into
user-friendly messages with appropriate exit codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import click
from pydantic import ValidationError as PydanticValidationError
from rich.markup import escape

from floe_cli.output import error
from floe_hive.errors import (
    AccessDeniedError,
    FloeStorageError,
    InvalidProcedureArgumentError,
    PartitionExistsError,
    ProcedureNotFoundError,
    TableNotFoundError,
)

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (bad arguments, existing partition, missing table)
EXIT_SYSTEM_ERROR = 2  # System error (missing catalog file, aborted transaction)

# Catalog errors caused by what the user asked for rather than the system
_USER_ERRORS: tuple[type[FloeStorageError], ...] = (
    InvalidProcedureArgumentError,
    PartitionExistsError,
    TableNotFoundError,
    AccessDeniedError,
    ProcedureNotFoundError,
)


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        """Initialize CLIError.

        Args:
            message: User-facing error message.
            exit_code: Exit code for the CLI.
        """
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting.

        Args:
            file: Output file (unused, for Click compatibility).
        """
        error(escape(self.format_message()))


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - tables.0.location: Field required"
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]

    for e in errors:
        loc = ".".join(str(x) for x in e["loc"])
        msg = e["msg"]
        lines.append(f"  - {loc}: {msg}")

    return "\n".join(lines)


def handle_yaml_error(err: Exception, file_path: str) -> NoReturn:
    """Handle YAML parsing errors with line number information.

    Raises:
        CLIError: Always raises with formatted error message.
    """
    error_msg = str(err)
    if hasattr(err, "problem_mark") and err.problem_mark is not None:
        mark = err.problem_mark
        line = mark.line + 1
        col = mark.column + 1
        error_msg = f"YAML syntax error at line {line}, column {col}: {err.problem}"  # type: ignore[attr-defined]

    raise CLIError(f"Invalid YAML in {file_path}: {error_msg}")


def handle_validation_error(err: PydanticValidationError, file_path: str) -> NoReturn:
    """Handle Pydantic validation errors with user-friendly messages.

    Raises:
        CLIError: Always raises with formatted error message.
    """
    formatted = format_pydantic_error(err)
    raise CLIError(f"Invalid catalog in {file_path}:\n{formatted}")


def handle_file_not_found(file_path: str) -> NoReturn:
    """Handle a missing catalog file.

    Raises:
        CLIError: Always raises with exit code EXIT_SYSTEM_ERROR.
    """
    raise CLIError(
        f"File not found: {file_path}\n\nUse --catalog to point at a catalog.yaml file.",
        exit_code=EXIT_SYSTEM_ERROR,
    )


def handle_storage_error(err: FloeStorageError) -> NoReturn:
    """Translate a floe-hive error into a CLIError.

    Argument, existence and permission problems exit with EXIT_USER_ERROR;
    everything else (collaborator and transaction failures) exits with
    EXIT_SYSTEM_ERROR.

    Raises:
        CLIError: Always raises.
    """
    exit_code = EXIT_USER_ERROR if isinstance(err, _USER_ERRORS) else EXIT_SYSTEM_ERROR
    raise CLIError(str(err), exit_code=exit_code) from err
