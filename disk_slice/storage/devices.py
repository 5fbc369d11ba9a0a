"""Block device inspection using lsblk, findmnt, blkid and sysfs.

This module is the read-only side of disk-slice: it asks the system what a
device is, whether it is in use, and what partitions it has. Nothing here
modifies a device.

Inspection:
    - BlockDeviceInspector.classify(): lsblk TYPE of a node ("disk", "part", ...)
    - BlockDeviceInspector.is_mounted(): findmnt -S on a node
    - BlockDeviceInspector.has_signature(): blkid low-level probe
    - BlockDeviceInspector.list_children(): child nodes under a disk

Post-creation:
    - list_partitions(): partition nodes of a disk, in lsblk order
    - read_partition_layout(): partition number and start offset from sysfs
    - read_filesystem_uuid(): blkid UUID of a freshly formatted partition

Implementation Notes:
    - lsblk is always called with -p so child names are full device paths
      (LVM and crypt holders live under /dev/mapper, not /dev).
    - sysfs reports partition start offsets in 512-byte units regardless of
      the logical sector size.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from disk_slice.logging import LoggerFactory
from disk_slice.storage.exceptions import DeviceInspectionError

SYS_CLASS_BLOCK = Path("/sys/class/block")
SYSFS_SECTOR_BYTES = 512

log = LoggerFactory.for_safety()
command_log = LoggerFactory.for_commands()


def run_command(
    command: Sequence[str],
    check: bool = True,
    log_output: bool = True,
    log_command: bool = True,
) -> subprocess.CompletedProcess:
    if log_command:
        log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(list(command), check=check, text=True, capture_output=True)
    except subprocess.CalledProcessError as error:
        command_log.warning(f"Command failed: {' '.join(command)}")
        if error.stdout:
            command_log.warning(f"stdout: {error.stdout.strip()}")
        if error.stderr:
            command_log.warning(f"stderr: {error.stderr.strip()}")
        raise
    if result.stdout and (log_output or result.returncode != 0):
        command_log.debug(f"stdout: {result.stdout.strip()}")
    if result.stderr and (log_output or result.returncode != 0):
        command_log.debug(f"stderr: {result.stderr.strip()}")
    if log_command:
        log.debug(f"Command completed with return code {result.returncode}")
    return result


def device_name(device_path: str) -> str:
    """Kernel name of a device node (``/dev/nvme1n1`` -> ``nvme1n1``)."""
    return Path(device_path).name


def sysfs_path(device_path: str, sys_root: Path = SYS_CLASS_BLOCK) -> Path:
    return sys_root / device_name(device_path)


class BlockDeviceInspector:
    """Answers the questions the safety validator asks about a device."""

    def classify(self, device_path: str) -> str:
        """Return the lsblk TYPE of ``device_path`` (empty string if unknown)."""
        result = run_command(
            ["lsblk", "-dno", "TYPE", device_path],
            check=False,
            log_output=False,
        )
        if result.returncode != 0:
            return ""
        lines = result.stdout.strip().splitlines()
        return lines[0].strip() if lines else ""

    def is_mounted(self, device_path: str) -> bool:
        """True if findmnt reports any mount with ``device_path`` as source."""
        result = run_command(
            ["findmnt", "-rn", "-S", device_path],
            check=False,
            log_output=False,
        )
        return result.returncode == 0

    def has_signature(self, device_path: str) -> bool:
        """True if blkid recognises a filesystem, RAID or LVM PV signature."""
        result = run_command(
            ["blkid", "-p", "-o", "export", device_path],
            check=False,
            log_output=False,
        )
        # blkid exits 2 when nothing is detected on the device.
        return result.returncode == 0 and bool(result.stdout.strip())

    def list_children(self, device_path: str) -> List[str]:
        """Paths of every non-disk node under ``device_path``, in lsblk order.

        Raises:
            DeviceInspectionError: lsblk failed, so the children are unknown
        """
        try:
            nodes = _lsblk_nodes(device_path)
        except (subprocess.CalledProcessError, OSError) as error:
            raise DeviceInspectionError(device_path, f"lsblk failed ({error})") from error
        return [path for path, node_type in nodes if node_type != "disk"]


def _lsblk_nodes(device_path: str) -> List[Tuple[str, str]]:
    result = run_command(
        ["lsblk", "-npr", "-o", "NAME,TYPE", device_path],
        log_output=False,
    )
    nodes = []
    for line in result.stdout.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            nodes.append((parts[0], parts[1]))
    return nodes


def list_partitions(device_path: str) -> List[str]:
    """Partition nodes (TYPE=part) of ``device_path``."""
    return [path for path, node_type in _lsblk_nodes(device_path) if node_type == "part"]


def read_partition_layout(
    partition_path: str, sys_root: Path = SYS_CLASS_BLOCK
) -> Tuple[int, int]:
    """Return ``(partition_number, start_bytes)`` for a partition node."""
    base = sysfs_path(partition_path, sys_root)
    number = int((base / "partition").read_text(encoding="utf-8").strip())
    start_units = int((base / "start").read_text(encoding="utf-8").strip())
    return number, start_units * SYSFS_SECTOR_BYTES


def read_filesystem_uuid(partition_path: str) -> Optional[str]:
    """Filesystem UUID from blkid, or None when blkid reports nothing."""
    result = run_command(
        ["blkid", "-s", "UUID", "-o", "value", partition_path],
        check=False,
        log_output=False,
    )
    uuid = result.stdout.strip()
    return uuid or None
