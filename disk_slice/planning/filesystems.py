"""Filesystem assignment for planned extents.

Pairs every extent with a filesystem, a label (``prefix + index``) and a
mountpoint (``mount_base + index``). Labels and mountpoints come from the plan
index, so they are unique per plan without further checks.
"""

from __future__ import annotations

from typing import List, Sequence, Union

from disk_slice.domain.models import Filesystem, PartitionExtent, PlanEntry
from disk_slice.logging import LoggerFactory
from disk_slice.storage.exceptions import (
    CardinalityMismatchError,
    InputError,
    UnsupportedFilesystemError,
)

log = LoggerFactory.for_planner()

FilesystemInput = Union[str, Filesystem, Sequence[Union[str, Filesystem]]]


def parse_filesystem(value: Union[str, Filesystem]) -> Filesystem:
    """Resolve a filesystem name (case-insensitive) to a Filesystem member."""
    if isinstance(value, Filesystem):
        return value
    name = str(value).strip().lower()
    try:
        return Filesystem(name)
    except ValueError:
        raise UnsupportedFilesystemError(str(value), Filesystem.names()) from None


def parse_filesystem_list(value: str) -> List[Filesystem]:
    """Parse ``--fstypes ext4,xfs,btrfs`` into an ordered list."""
    items = [item.strip() for item in str(value).split(",")]
    if any(not item for item in items):
        raise InputError(f"empty entry in filesystem list {value!r}")
    return [parse_filesystem(item) for item in items]


def resolve_filesystems(filesystems: FilesystemInput, count: int) -> List[Filesystem]:
    """Expand a single filesystem or validate a per-partition list.

    Raises:
        CardinalityMismatchError: List length differs from ``count``
        UnsupportedFilesystemError: Unknown filesystem name
    """
    if isinstance(filesystems, (str, Filesystem)):
        return [parse_filesystem(filesystems)] * count
    resolved = [parse_filesystem(item) for item in filesystems]
    if len(resolved) != count:
        raise CardinalityMismatchError(expected=count, actual=len(resolved))
    return resolved


def assign_filesystems(
    extents: Sequence[PartitionExtent],
    filesystems: FilesystemInput,
    label_prefix: str,
    mount_base: str,
) -> List[PlanEntry]:
    """Pair extents with filesystems, labels and mountpoints.

    Args:
        extents: Extents from the layout planner
        filesystems: One filesystem for all extents, or one per extent
        label_prefix: Prefix for filesystem / GPT labels (``data`` -> ``data1``)
        mount_base: Prefix for mountpoints (``/mnt/data`` -> ``/mnt/data1``)
    """
    resolved = resolve_filesystems(filesystems, len(extents))

    entries = [
        PlanEntry(
            extent=extent,
            filesystem=filesystem,
            label=f"{label_prefix}{extent.index}",
            mountpoint=f"{mount_base}{extent.index}",
        )
        for extent, filesystem in zip(extents, resolved)
    ]
    log.debug(
        "Assigned filesystems: {}",
        ", ".join(f"{e.label}={e.filesystem.value}" for e in entries),
    )
    return entries
