"""Assemble a complete Plan from geometry, split and filesystem choice."""

from __future__ import annotations

from disk_slice.domain.models import DiskGeometry, Plan, SplitSpec
from disk_slice.planning.filesystems import FilesystemInput, assign_filesystems
from disk_slice.planning.layout import plan_extents


def build_plan(
    disk_path: str,
    geometry: DiskGeometry,
    split: SplitSpec,
    filesystems: FilesystemInput,
    *,
    label_prefix: str,
    mount_base: str,
    align_mib: int,
) -> Plan:
    """Run the layout planner and filesystem assigner for one disk.

    Deterministic: the same inputs always give an identical Plan, whether or
    not the run is a dry run.
    """
    extents = plan_extents(geometry, split, align_mib)
    entries = assign_filesystems(extents, filesystems, label_prefix, mount_base)
    return Plan(
        disk_path=disk_path,
        geometry=geometry,
        align_mib=align_mib,
        entries=tuple(entries),
    )
