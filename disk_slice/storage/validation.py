"""Safety validation before any destructive operation.

The target must be a whole disk that nothing is using. Checks run in a fixed
order and stop at the first failure:

1. The device is classified as ``disk`` (not a partition, loop child, ...)
2. The device itself has no active mount
3. Every existing child node is unmounted and carries no filesystem, RAID or
   LVM physical-volume signature

These checks are an advisory gate, not a lock. Nothing stops another process
from using the disk between validation and execution; disk-slice assumes the
operator has exclusive access to a freshly attached disk.

All validation functions raise specific exceptions from the exceptions module
rather than returning boolean values.

Example:
    from disk_slice.storage.validation import validate_target_disk

    validate_target_disk("/dev/sdb")
    # Safe to plan and partition
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from disk_slice.logging import LoggerFactory
from disk_slice.storage.devices import BlockDeviceInspector
from disk_slice.storage.exceptions import (
    ChildHasSignatureError,
    ChildMountedError,
    DeviceMountedError,
    NotWholeDiskError,
)

log = LoggerFactory.for_safety()

WHOLE_DISK_TYPE = "disk"


class DeviceInspector(Protocol):
    def classify(self, device_path: str) -> str: ...

    def is_mounted(self, device_path: str) -> bool: ...

    def has_signature(self, device_path: str) -> bool: ...

    def list_children(self, device_path: str) -> Sequence[str]: ...


def validate_whole_disk(disk_path: str, inspector: DeviceInspector) -> None:
    """Raises NotWholeDiskError unless the node is a whole disk."""
    device_type = inspector.classify(disk_path)
    if device_type != WHOLE_DISK_TYPE:
        raise NotWholeDiskError(disk_path, device_type)


def validate_not_mounted(disk_path: str, inspector: DeviceInspector) -> None:
    """Raises DeviceMountedError if the disk itself is a mount source."""
    if inspector.is_mounted(disk_path):
        raise DeviceMountedError(disk_path)


def validate_children_unused(disk_path: str, inspector: DeviceInspector) -> None:
    """Raises ChildMountedError / ChildHasSignatureError for a busy child."""
    children = list(inspector.list_children(disk_path))
    if children:
        log.debug(f"{disk_path} has existing children: {', '.join(children)}")
    for child in children:
        if inspector.is_mounted(child):
            raise ChildMountedError(disk_path, child)
        if inspector.has_signature(child):
            raise ChildHasSignatureError(disk_path, child)


def validate_target_disk(
    disk_path: str, inspector: Optional[DeviceInspector] = None
) -> None:
    """Perform all safety checks required before partitioning ``disk_path``.

    Args:
        disk_path: Device node, e.g. /dev/sdb
        inspector: Source of device facts (defaults to lsblk/findmnt/blkid)

    Raises:
        NotWholeDiskError, DeviceMountedError, ChildMountedError,
        ChildHasSignatureError, DeviceInspectionError
    """
    inspector = inspector or BlockDeviceInspector()

    validate_whole_disk(disk_path, inspector)
    validate_not_mounted(disk_path, inspector)
    validate_children_unused(disk_path, inspector)

    log.info(f"{disk_path} passed safety checks")
