"""Domain model for disk slicing.

Type-safe value objects shared by the planner, the safety checks and the
executors. Everything here is created fresh per invocation and is immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from disk_slice.storage.exceptions import InvalidSpecError

MIB = 1024 * 1024


# ==============================================================================
# Disk Geometry
# ==============================================================================


@dataclass(frozen=True)
class DiskGeometry:
    """Snapshot of a disk's size as reported by the kernel."""

    total_bytes: int
    sector_bytes: int

    def __post_init__(self) -> None:
        if self.total_bytes <= 0:
            raise ValueError(f"total_bytes must be positive, got {self.total_bytes}")
        if self.sector_bytes <= 0:
            raise ValueError(f"sector_bytes must be positive, got {self.sector_bytes}")

    @property
    def total_mib(self) -> int:
        """Whole MiB on the disk (truncated)."""
        return self.total_bytes // MIB

    @classmethod
    def from_sectors(cls, sector_bytes: int, total_sectors: int) -> DiskGeometry:
        return cls(total_bytes=sector_bytes * total_sectors, sector_bytes=sector_bytes)


# ==============================================================================
# Split Specification
# ==============================================================================


@dataclass(frozen=True)
class EqualCount:
    """Split the usable space into ``count`` equal partitions."""

    count: int

    def __post_init__(self) -> None:
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise InvalidSpecError(f"count must be an integer, got {self.count!r}")
        if self.count < 1:
            raise InvalidSpecError(f"count must be a positive integer, got {self.count}")

    @property
    def partition_count(self) -> int:
        return self.count


@dataclass(frozen=True)
class PercentageList:
    """Split the usable space by integer percentages summing to 100."""

    weights: Tuple[int, ...]

    def __post_init__(self) -> None:
        # Accept any sequence but store a tuple so the value stays hashable.
        object.__setattr__(self, "weights", tuple(self.weights))
        if not self.weights:
            raise InvalidSpecError("layout needs at least one percentage")
        for weight in self.weights:
            if isinstance(weight, bool) or not isinstance(weight, int):
                raise InvalidSpecError(f"percentage must be an integer, got {weight!r}")
            if not 1 <= weight <= 100:
                raise InvalidSpecError(f"percent out of range: {weight}%")
        total = sum(self.weights)
        if total != 100:
            raise InvalidSpecError(f"percentages must sum to 100 (got {total})")

    @property
    def partition_count(self) -> int:
        return len(self.weights)


SplitSpec = Union[EqualCount, PercentageList]


# ==============================================================================
# Partition Extents
# ==============================================================================


@dataclass(frozen=True)
class PartitionExtent:
    """Inclusive MiB range destined to become partition ``index``."""

    index: int  # 1-based, creation order
    start_mib: int
    end_mib: int

    @property
    def size_mib(self) -> int:
        return self.end_mib - self.start_mib + 1


class Filesystem(Enum):
    """Filesystems disk-slice knows how to create."""

    EXT4 = "ext4"
    EXT3 = "ext3"
    XFS = "xfs"
    BTRFS = "btrfs"

    @property
    def fstab_pass(self) -> int:
        """fsck pass number for /etc/fstab (xfs does not use fsck)."""
        return 0 if self is Filesystem.XFS else 2

    @property
    def mkfs_tool(self) -> str:
        return f"mkfs.{self.value}"

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


@dataclass(frozen=True)
class PlanEntry:
    """One planned partition with its filesystem and derived names."""

    extent: PartitionExtent
    filesystem: Filesystem
    label: str
    mountpoint: str

    @property
    def index(self) -> int:
        return self.extent.index

    @property
    def start_mib(self) -> int:
        return self.extent.start_mib

    @property
    def end_mib(self) -> int:
        return self.extent.end_mib


@dataclass(frozen=True)
class Plan:
    """Backend-agnostic partition plan for a single disk."""

    disk_path: str
    geometry: DiskGeometry
    align_mib: int
    entries: Tuple[PlanEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def disk_name(self) -> str:
        return self.disk_path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def filesystems(self) -> Tuple[Filesystem, ...]:
        return tuple(entry.filesystem for entry in self.entries)


# ==============================================================================
# Created Partitions
# ==============================================================================


@dataclass(frozen=True)
class CreatedPartition:
    """A partition node matched back to its plan entry after creation."""

    entry: PlanEntry
    device_path: str  # e.g. /dev/sdb1 or /dev/nvme1n1p1
    uuid: str | None = None

    def with_uuid(self, uuid: str) -> CreatedPartition:
        return CreatedPartition(entry=self.entry, device_path=self.device_path, uuid=uuid)
