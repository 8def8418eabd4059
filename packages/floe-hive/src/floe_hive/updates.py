"""Partition update construction and JSON codec.

This module provides:
- build_empty_partition_update: NEW update with no files and zero counters
- PartitionUpdateCodec: Deterministic JSON encoding for finish_insert
"""

from __future__ import annotations

from pydantic import ValidationError

from floe_hive.config import PartitionUpdate, UpdateMode, WriteInfo


def build_empty_partition_update(partition_name: str, write_info: WriteInfo) -> PartitionUpdate:
    """Build the update record for a partition without files.

    Args:
        partition_name: Canonical partition name.
        write_info: Locations allocated for the partition.

    Returns:
        PartitionUpdate with mode NEW, an empty file list and zero counters.

    Example:
        >>> info = WriteInfo(
        ...     write_path="/staging/q1/year=2024",
        ...     target_path="/data/sales/year=2024",
        ...     write_mode=WriteMode.STAGE_ON_TMP_DIR_AND_MOVE,
        ... )
        >>> build_empty_partition_update("year=2024", info).is_empty
        True
    """
    return PartitionUpdate(
        name=partition_name,
        update_mode=UpdateMode.NEW,
        write_path=write_info.write_path,
        target_path=write_info.target_path,
        file_names=(),
        row_count=0,
        in_memory_data_size_in_bytes=0,
        on_disk_data_size_in_bytes=0,
    )


class PartitionUpdateCodec:
    """Encode and decode PartitionUpdate as compact UTF-8 JSON.

    Keys are camelCase in field declaration order, so equal updates always
    produce identical bytes.

    Example:
        >>> codec = PartitionUpdateCodec()
        >>> payload = codec.to_json_bytes(update)
        >>> codec.from_json_bytes(payload) == update
        True
    """

    def to_json_bytes(self, update: PartitionUpdate) -> bytes:
        """Serialize an update for finish_insert."""
        return update.model_dump_json(by_alias=True).encode("utf-8")

    def from_json_bytes(self, payload: bytes) -> PartitionUpdate:
        """Deserialize an update produced by to_json_bytes.

        Raises:
            ValueError: If the payload is not a valid partition update.
        """
        try:
            return PartitionUpdate.model_validate_json(payload)
        except ValidationError as exc:
            msg = f"Invalid partition update payload: {exc.error_count()} error(s)"
            raise ValueError(msg) from exc
