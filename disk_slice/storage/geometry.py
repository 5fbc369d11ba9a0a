"""Disk geometry from sysfs.

``/sys/class/block/<name>/queue/logical_block_size`` gives the logical sector
size in bytes. ``/sys/class/block/<name>/size`` is always counted in 512-byte
units, whatever the logical sector size, so it is converted before use.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from disk_slice.domain.models import DiskGeometry
from disk_slice.logging import LoggerFactory
from disk_slice.storage.devices import SYS_CLASS_BLOCK, SYSFS_SECTOR_BYTES, sysfs_path
from disk_slice.storage.exceptions import GeometryError

log = LoggerFactory.for_safety()


def _read_positive_int(path: Path, device_path: str, what: str) -> int:
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as error:
        raise GeometryError(device_path, f"cannot read {what} ({error})") from error
    try:
        value = int(text)
    except ValueError:
        raise GeometryError(device_path, f"unparsable {what}: {text!r}") from None
    if value <= 0:
        raise GeometryError(device_path, f"{what} is {value}")
    return value


def read_sector_info(
    device_path: str, sys_root: Path = SYS_CLASS_BLOCK
) -> Tuple[int, int]:
    """Return ``(sector_bytes, total_sectors)`` in logical sectors.

    Raises:
        GeometryError: sysfs entries are missing, unparsable or zero
    """
    base = sysfs_path(device_path, sys_root)
    sector_bytes = _read_positive_int(
        base / "queue" / "logical_block_size", device_path, "sector size"
    )
    size_units = _read_positive_int(base / "size", device_path, "disk size (sectors)")
    total_sectors = size_units * SYSFS_SECTOR_BYTES // sector_bytes
    if total_sectors <= 0:
        raise GeometryError(device_path, "disk reports zero logical sectors")
    return sector_bytes, total_sectors


def read_geometry(device_path: str, sys_root: Path = SYS_CLASS_BLOCK) -> DiskGeometry:
    """Read the geometry snapshot used by the layout planner."""
    sector_bytes, total_sectors = read_sector_info(device_path, sys_root)
    geometry = DiskGeometry.from_sectors(sector_bytes, total_sectors)
    log.debug(
        "Geometry of {}: {} bytes, {} MiB, sector {}B",
        device_path,
        geometry.total_bytes,
        geometry.total_mib,
        sector_bytes,
    )
    return geometry
