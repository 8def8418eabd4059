"""Partition naming and partition spec validation.

This module provides:
- escape_path_name / unescape_path_name: Hive path-segment escaping
- make_partition_name: canonical "col=value/col=value" partition names
- parse_partition_name: inverse of make_partition_name
- validate_partition_columns: caller-supplied columns vs table columns

The canonical name computed here is the key the metastore indexes
partitions under. Both sides must use this module; a divergent encoding
silently registers a partition nobody can find.
"""

from __future__ import annotations

from collections.abc import Sequence

from floe_hive.errors import InvalidProcedureArgumentError

# Hive stores NULL and empty partition values under this directory name
DEFAULT_PARTITION_NAME = "__HIVE_DEFAULT_PARTITION__"

_CHARS_TO_ESCAPE = frozenset(
    [chr(c) for c in range(0x01, 0x20)]
    + ['"', "#", "%", "'", "*", "/", ":", "=", "?", "\\", "\x7f", "{", "[", "]", "^"]
)


def escape_path_name(path: str | None) -> str:
    """Escape a partition column name or value for use as a path segment.

    Args:
        path: Raw column name or value. None or empty maps to the
            default partition name.

    Returns:
        Escaped path segment using %XX (upper-case hex) sequences.

    Example:
        >>> escape_path_name("2024/01")
        '2024%2F01'
        >>> escape_path_name("")
        '__HIVE_DEFAULT_PARTITION__'
    """
    if not path:
        return DEFAULT_PARTITION_NAME
    return "".join(f"%{ord(c):02X}" if c in _CHARS_TO_ESCAPE else c for c in path)


def unescape_path_name(path: str) -> str:
    """Reverse escape_path_name.

    Malformed escapes (a '%' not followed by two hex digits) are kept
    verbatim.

    Example:
        >>> unescape_path_name("2024%2F01")
        '2024/01'
    """
    out: list[str] = []
    i = 0
    while i < len(path):
        c = path[i]
        if c == "%" and _is_hex(path[i + 1 : i + 3]):
            out.append(chr(int(path[i + 1 : i + 3], 16)))
            i += 3
            continue
        out.append(c)
        i += 1
    return "".join(out)


def _is_hex(pair: str) -> bool:
    return len(pair) == 2 and all(ch in "0123456789abcdefABCDEF" for ch in pair)


def make_partition_name(columns: Sequence[str], values: Sequence[str | None]) -> str:
    """Build the canonical partition name from column names and values.

    Column names are lower-cased before escaping; values are used verbatim.

    Args:
        columns: Partition column names in table order.
        values: Partition values, positionally matching columns.

    Returns:
        Partition name such as "year=2024/region=west".

    Raises:
        InvalidProcedureArgumentError: If columns and values differ in length.

    Example:
        >>> make_partition_name(["year", "region"], ["2024", "west"])
        'year=2024/region=west'
    """
    if len(columns) != len(values):
        msg = (
            f"Partition values count ({len(values)}) does not match "
            f"partition columns count ({len(columns)})"
        )
        raise InvalidProcedureArgumentError(msg, argument="partition_values")
    return "/".join(
        f"{escape_path_name(column.lower())}={escape_path_name(value)}"
        for column, value in zip(columns, values)
    )


def parse_partition_name(name: str) -> list[tuple[str, str]]:
    """Split a canonical partition name into unescaped (column, value) pairs.

    Args:
        name: Partition name produced by make_partition_name.

    Returns:
        Ordered list of (column, value) pairs.

    Raises:
        ValueError: If a segment has no '=' separator.

    Example:
        >>> parse_partition_name("year=2024/region=west")
        [('year', '2024'), ('region', 'west')]
    """
    pairs: list[tuple[str, str]] = []
    for segment in name.split("/"):
        column, sep, value = segment.partition("=")
        if not sep:
            msg = f"Invalid partition name segment: {segment!r}"
            raise ValueError(msg)
        pairs.append((unescape_path_name(column), unescape_path_name(value)))
    return pairs


def validate_partition_columns(
    actual_columns: Sequence[str],
    supplied_columns: Sequence[str],
) -> None:
    """Require supplied partition column names to equal the table's, in order.

    Args:
        actual_columns: The table's partition columns in declared order.
        supplied_columns: The caller's partition column names.

    Raises:
        InvalidProcedureArgumentError: On any difference in names, order
            or count. The message names the expected ordering.
    """
    if list(supplied_columns) != list(actual_columns):
        msg = (
            "Provided partition column names do not match actual partition column names: "
            f"{list(actual_columns)}"
        )
        raise InvalidProcedureArgumentError(msg, argument="partition_columns")
