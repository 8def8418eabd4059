"""Storage location allocation for inserts and partitions.

HiveLocationService decides where an insert writes (a staging directory or
the table location itself) and derives per-partition write and target
paths from that decision.
"""

from __future__ import annotations

from typing import Protocol

from floe_hive.config import HiveProcedureConfig, LocationHandle, TableHandle, WriteInfo, WriteMode


class LocationService(Protocol):
    """Allocates storage locations for partitions of an in-flight insert."""

    def get_partition_write_info(
        self,
        location_handle: LocationHandle,
        partition_name: str,
    ) -> WriteInfo: ...


def join_path(base: str, child: str) -> str:
    """Append a relative child path to a location URI or path."""
    return f"{base.rstrip('/')}/{child.lstrip('/')}"


class HiveLocationService:
    """Location service for tables laid out as Hive partition directories.

    Attributes:
        config: Staging directory configuration.

    Example:
        >>> service = HiveLocationService(HiveProcedureConfig(temporary_staging_directory_enabled=False))
        >>> handle = service.for_existing_table(table, query_id="q1")
        >>> service.get_partition_write_info(handle, "year=2024").target_path
        's3://warehouse/web/sales/year=2024'
    """

    def __init__(self, config: HiveProcedureConfig | None = None) -> None:
        self._config = config or HiveProcedureConfig()

    @property
    def config(self) -> HiveProcedureConfig:
        """Return the staging configuration."""
        return self._config

    def for_existing_table(self, table: TableHandle, query_id: str) -> LocationHandle:
        """Choose write and target locations for an insert into an existing table.

        Args:
            table: Resolved table handle.
            query_id: Identifier of the insert, used to name the staging directory.

        Returns:
            LocationHandle rooted at the table location.
        """
        if self._config.temporary_staging_directory_enabled:
            staging = join_path(
                self._config.temporary_staging_directory_path,
                f"floe-staging-{query_id}",
            )
            return LocationHandle(
                target_path=table.location,
                write_path=staging,
                write_mode=WriteMode.STAGE_ON_TMP_DIR_AND_MOVE,
            )
        return LocationHandle(
            target_path=table.location,
            write_path=table.location,
            write_mode=WriteMode.DIRECT_TO_TARGET_EXISTING_DIRECTORY,
        )

    def get_partition_write_info(
        self,
        location_handle: LocationHandle,
        partition_name: str,
    ) -> WriteInfo:
        """Derive write and target paths for a new partition.

        Args:
            location_handle: Locations chosen when the insert began.
            partition_name: Canonical partition name (relative path).

        Returns:
            WriteInfo with both paths suffixed by the partition name.
        """
        return WriteInfo(
            write_path=join_path(location_handle.write_path, partition_name),
            target_path=join_path(location_handle.target_path, partition_name),
            write_mode=location_handle.write_mode,
        )
