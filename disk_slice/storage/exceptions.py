"""Custom exceptions for disk slicing.

Every failure in disk-slice is terminal for the current invocation. The
hierarchy mirrors the phase in which an error can occur, so the CLI can tell
the operator whether the disk was touched.

Exception Hierarchy:
    SliceError (base)
        ├── InputError
        │   ├── InvalidSpecError
        │   ├── CardinalityMismatchError
        │   └── UnsupportedFilesystemError
        ├── PreflightError
        │   ├── NotRootError
        │   ├── MissingToolError
        │   └── NotBlockDeviceError
        ├── SafetyError
        │   ├── NotWholeDiskError
        │   ├── DeviceMountedError
        │   ├── ChildMountedError
        │   ├── ChildHasSignatureError
        │   └── DeviceInspectionError
        ├── GeometryError
        ├── PlanningError
        │   ├── SizeTooSmallError
        │   ├── DegenerateSpanError
        │   └── LayoutInvariantError
        └── ExecutionError
            ├── CommandFailedError
            ├── PartitionCountMismatchError
            ├── PartitionReconcileError
            └── UuidLookupError

Only ExecutionError and its subclasses can be raised after the disk has been
modified.

Usage:
    from disk_slice.storage.exceptions import NotWholeDiskError

    if device_type != "disk":
        raise NotWholeDiskError(disk_path, device_type)
"""

from __future__ import annotations

from typing import Sequence


class SliceError(Exception):
    """Base exception for all disk-slice errors."""


# ==============================================================================
# Input
# ==============================================================================


class InputError(SliceError):
    """Malformed command-line input; raised before the device is touched."""


class InvalidSpecError(InputError):
    """Split specification (count, layout or alignment) is invalid."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid split specification: {reason}")


class CardinalityMismatchError(InputError):
    """Number of filesystems does not match the number of partitions."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Got {actual} filesystem(s) for {expected} partition(s); "
            f"--fstypes count must match the partition count"
        )


class UnsupportedFilesystemError(InputError):
    """Filesystem is not one of the supported types."""

    def __init__(self, filesystem: str, supported: Sequence[str] = ()):
        self.filesystem = filesystem
        self.supported = tuple(supported)
        msg = f"Unsupported filesystem: {filesystem!r}"
        if self.supported:
            msg += f" (supported: {', '.join(self.supported)})"
        super().__init__(msg)


# ==============================================================================
# Pre-flight
# ==============================================================================


class PreflightError(SliceError):
    """Environment is not fit to run the requested operation."""


class NotRootError(PreflightError):
    """Destructive run attempted without root privileges."""

    def __init__(self):
        super().__init__("Run as root (or use --dry-run)")


class MissingToolError(PreflightError):
    """A required external command is not installed."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Missing required command: {tool}")


class NotBlockDeviceError(PreflightError):
    """Target path is not a block device."""

    def __init__(self, device_path: str):
        self.device_path = device_path
        super().__init__(f"{device_path} is not a block device")


# ==============================================================================
# Safety
# ==============================================================================


class SafetyError(SliceError):
    """Target device is not eligible for destructive operations."""


class NotWholeDiskError(SafetyError):
    """Target is a partition (or other node), not a whole disk."""

    def __init__(self, device_path: str, device_type: str):
        self.device_path = device_path
        self.device_type = device_type
        super().__init__(
            f"{device_path} is not a whole disk (TYPE={device_type or 'unknown'})"
        )


class DeviceMountedError(SafetyError):
    """Target disk is mounted or used by a mount."""

    def __init__(self, device_path: str):
        self.device_path = device_path
        super().__init__(f"{device_path} appears to be mounted or used by a mount")


class ChildMountedError(SafetyError):
    """A partition of the target disk is mounted."""

    def __init__(self, device_path: str, child_path: str):
        self.device_path = device_path
        self.child_path = child_path
        super().__init__(f"Child {child_path} of {device_path} is mounted. Refusing.")


class ChildHasSignatureError(SafetyError):
    """A partition of the target disk carries a filesystem or LVM signature."""

    def __init__(self, device_path: str, child_path: str):
        self.device_path = device_path
        self.child_path = child_path
        super().__init__(
            f"Child {child_path} of {device_path} has existing signatures. Refusing."
        )


class DeviceInspectionError(SafetyError):
    """Device state could not be determined, so the disk is treated as busy."""

    def __init__(self, device_path: str, reason: str):
        self.device_path = device_path
        self.reason = reason
        super().__init__(f"Cannot inspect {device_path}: {reason}. Refusing.")


# ==============================================================================
# Geometry & planning
# ==============================================================================


class GeometryError(SliceError):
    """Disk sector size or total size could not be read."""

    def __init__(self, device_path: str, reason: str):
        self.device_path = device_path
        self.reason = reason
        super().__init__(f"Cannot read geometry of {device_path}: {reason}")


class PlanningError(SliceError):
    """Layout could not be computed for the disk."""


class SizeTooSmallError(PlanningError):
    """Usable space is too small for the requested split."""

    def __init__(self, total_mib: int, reason: str):
        self.total_mib = total_mib
        self.reason = reason
        super().__init__(f"Disk too small ({total_mib} MiB): {reason}")


class DegenerateSpanError(PlanningError, InvalidSpecError):
    """A percentage resolves to an empty or negative partition."""

    def __init__(self, index: int, start_mib: int, end_mib: int):
        self.index = index
        self.start_mib = start_mib
        self.end_mib = end_mib
        InvalidSpecError.__init__(
            self,
            f"calculated partition {index} size too small "
            f"({start_mib}MiB -> {end_mib}MiB)",
        )


class LayoutInvariantError(PlanningError):
    """Computed extents overlap, leave gaps, or fall outside the disk."""


# ==============================================================================
# Execution
# ==============================================================================


class ExecutionError(SliceError):
    """External tool failure; the disk may be partially configured."""

    def __init__(self, message: str, device: str | None = None):
        self.device = device
        super().__init__(message)


class CommandFailedError(ExecutionError):
    """A partitioning, formatting or mount command exited non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stderr: str = "",
        device: str | None = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({' '.join(self.command)}) rc={returncode}"
        if stderr:
            msg += f": {stderr.strip()}"
        super().__init__(msg, device=device)


class PartitionCountMismatchError(ExecutionError):
    """Kernel reports a different partition count than the plan."""

    def __init__(self, device: str, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Partition count mismatch after creation on {device}: "
            f"planned {expected}, found {actual}",
            device=device,
        )


class PartitionReconcileError(ExecutionError):
    """A created partition does not sit where the plan put it."""


class UuidLookupError(ExecutionError):
    """Filesystem UUID could not be read after formatting."""

    def __init__(self, partition_path: str):
        super().__init__(f"Could not read UUID for {partition_path}", device=partition_path)
