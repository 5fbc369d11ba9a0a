"""Apply a Plan to a disk: partition table, partitions, filesystems.

Two backends share one flow and differ only in how partitions are created:

    sgdisk:  sgdisk -n i:START:END -t i:8300 -c i:LABEL DISK
    parted:  parted -s -a optimal DISK mkpart LABEL START END

Flow:
    1. Zap old partition table signatures and write a fresh GPT
       (sgdisk -Z / sgdisk -og, with partprobe around them)
    2. Create one partition per plan entry
    3. Re-read the partition table and wait for udev
    4. Reconcile kernel partition nodes with plan entries by position
    5. mkfs every partition with its label and read back the UUID

Failure Policy:
    Any failing required command raises CommandFailedError immediately. There
    is no retry and no rollback: a disk can be left partially configured and
    the error says so. Commands marked non-fatal (partprobe before the new
    table exists, ``set lvm off``) only log a warning.

Dry Run:
    planned_commands() returns the exact command list without running
    anything, using predicted partition node names.
"""

from __future__ import annotations

import contextlib
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type

from disk_slice.domain.models import MIB, CreatedPartition, Filesystem, Plan, PlanEntry
from disk_slice.logging import LoggerFactory
from disk_slice.storage.devices import (
    SYS_CLASS_BLOCK,
    list_partitions,
    read_filesystem_uuid,
    read_partition_layout,
    run_command,
)
from disk_slice.storage.exceptions import (
    CommandFailedError,
    ExecutionError,
    PartitionCountMismatchError,
    PartitionReconcileError,
    UuidLookupError,
)

log = LoggerFactory.for_executor()

# GPT type code for "Linux filesystem data".
LINUX_FILESYSTEM_TYPE = "8300"

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class ToolCommand:
    """An external command and whether a non-zero exit aborts the run."""

    args: Tuple[str, ...]
    fatal: bool = True

    def __str__(self) -> str:
        text = " ".join(self.args)
        return text if self.fatal else f"{text} || true"


def partition_node(disk_path: str, index: int) -> str:
    """Predicted node for partition ``index`` (``/dev/nvme1n1`` -> ``/dev/nvme1n1p1``)."""
    suffix = "p" if disk_path[-1].isdigit() else ""
    return f"{disk_path}{suffix}{index}"


def mkfs_command(filesystem: Filesystem, label: str, partition_path: str) -> ToolCommand:
    if filesystem in (Filesystem.EXT4, Filesystem.EXT3):
        args = (filesystem.mkfs_tool, "-F", "-L", label, partition_path)
    elif filesystem in (Filesystem.XFS, Filesystem.BTRFS):
        args = (filesystem.mkfs_tool, "-f", "-L", label, partition_path)
    else:
        raise ExecutionError(f"No mkfs command for {filesystem!r}")
    return ToolCommand(args)


class Executor(ABC):
    """Base class for partitioning backends."""

    tool: str = ""

    def __init__(
        self,
        runner: Optional[Runner] = None,
        sys_root: Path = SYS_CLASS_BLOCK,
    ):
        self._runner = runner or run_command
        self._sys_root = sys_root

    # ------------------------------------------------------------------
    # Command construction
    # ------------------------------------------------------------------

    def table_commands(self, plan: Plan) -> List[ToolCommand]:
        disk = plan.disk_path
        return [
            ToolCommand(("partprobe", disk), fatal=False),
            ToolCommand(("sgdisk", "-Z", disk)),
            ToolCommand(("sgdisk", "-og", disk)),
            ToolCommand(("partprobe", disk), fatal=False),
        ]

    @abstractmethod
    def partition_commands(self, plan: Plan) -> List[ToolCommand]:
        """Commands that create every planned partition."""

    def reread_commands(self, plan: Plan) -> List[ToolCommand]:
        return [ToolCommand(("partprobe", plan.disk_path))]

    def format_commands(self, partitions: Sequence[CreatedPartition]) -> List[ToolCommand]:
        return [
            mkfs_command(p.entry.filesystem, p.entry.label, p.device_path)
            for p in partitions
        ]

    def planned_commands(self, plan: Plan) -> List[ToolCommand]:
        """Everything apply() would run, without running it."""
        predicted = [
            CreatedPartition(entry=entry, device_path=partition_node(plan.disk_path, entry.index))
            for entry in plan.entries
        ]
        return (
            self.table_commands(plan)
            + self.partition_commands(plan)
            + self.reread_commands(plan)
            + self.format_commands(predicted)
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run(self, command: ToolCommand, device: Optional[str] = None) -> subprocess.CompletedProcess:
        try:
            result = self._runner(list(command.args), check=False)
        except OSError as error:
            raise ExecutionError(
                f"Cannot run {command.args[0]}: {error}", device=device
            ) from error
        if result.returncode != 0:
            if command.fatal:
                raise CommandFailedError(
                    command.args, result.returncode, result.stderr or "", device=device
                )
            log.warning(f"Ignoring failure of '{command}' (rc={result.returncode})")
        return result

    def _settle(self) -> None:
        if shutil.which("udevadm"):
            with contextlib.suppress(subprocess.CalledProcessError, OSError):
                self._runner(["udevadm", "settle", "--timeout=10"], check=False)

    def create_partitions(self, plan: Plan) -> List[CreatedPartition]:
        """Write a new GPT with one partition per plan entry."""
        disk = plan.disk_path
        log.info(f"Creating GPT partition table on {disk} with {self.tool}")
        for command in self.table_commands(plan):
            self._run(command, device=disk)
        for command in self.partition_commands(plan):
            log.debug(f"Creating partition: {command}")
            self._run(command, device=disk)
        for command in self.reread_commands(plan):
            self._run(command, device=disk)
        self._settle()

        try:
            partition_paths = list_partitions(disk)
        except (subprocess.CalledProcessError, OSError) as error:
            raise ExecutionError(
                f"Cannot list partitions of {disk} after creation: {error}", device=disk
            ) from error
        partitions = reconcile_partitions(plan, partition_paths, self._sys_root)
        log.info(
            "Created partitions: {}",
            ", ".join(p.device_path for p in partitions),
        )
        return partitions

    def format_partitions(self, partitions: Sequence[CreatedPartition]) -> List[CreatedPartition]:
        """mkfs each partition and attach the resulting filesystem UUID."""
        formatted = []
        for partition, command in zip(partitions, self.format_commands(partitions)):
            log.info(
                f"Formatting {partition.device_path} as {partition.entry.filesystem.value} "
                f"(label {partition.entry.label})"
            )
            self._run(command, device=partition.device_path)
            uuid = read_filesystem_uuid(partition.device_path)
            if not uuid:
                raise UuidLookupError(partition.device_path)
            formatted.append(partition.with_uuid(uuid))
        return formatted

    def apply(self, plan: Plan) -> List[CreatedPartition]:
        """Partition and format the disk. Destructive."""
        return self.format_partitions(self.create_partitions(plan))


class SgdiskExecutor(Executor):
    tool = "sgdisk"

    def partition_commands(self, plan: Plan) -> List[ToolCommand]:
        commands = []
        for entry in plan.entries:
            i = entry.index
            commands.append(
                ToolCommand(
                    (
                        "sgdisk",
                        "-n", f"{i}:{entry.start_mib}MiB:{entry.end_mib}MiB",
                        "-t", f"{i}:{LINUX_FILESYSTEM_TYPE}",
                        "-c", f"{i}:{entry.label}",
                        plan.disk_path,
                    )
                )
            )
        return commands


class PartedExecutor(Executor):
    tool = "parted"

    def partition_commands(self, plan: Plan) -> List[ToolCommand]:
        disk = plan.disk_path
        commands = [ToolCommand(("parted", "-s", disk, "mklabel", "gpt"))]
        for entry in plan.entries:
            commands.append(
                ToolCommand(
                    (
                        "parted", "-s", "-a", "optimal", disk,
                        "mkpart", entry.label,
                        f"{entry.start_mib}MiB", f"{entry.end_mib}MiB",
                    )
                )
            )
            commands.append(
                ToolCommand(("parted", "-s", disk, "set", str(entry.index), "lvm", "off"), fatal=False)
            )
        return commands


EXECUTORS: Dict[str, Type[Executor]] = {
    SgdiskExecutor.tool: SgdiskExecutor,
    PartedExecutor.tool: PartedExecutor,
}


def get_executor(tool: str, **kwargs) -> Executor:
    try:
        executor_cls = EXECUTORS[tool]
    except KeyError:
        raise ValueError(f"Unknown partitioning tool: {tool}") from None
    return executor_cls(**kwargs)


def _entry_contains(entry: PlanEntry, start_bytes: int) -> bool:
    return entry.start_mib * MIB <= start_bytes <= entry.end_mib * MIB


def reconcile_partitions(
    plan: Plan,
    partition_paths: Sequence[str],
    sys_root: Path = SYS_CLASS_BLOCK,
) -> List[CreatedPartition]:
    """Match partition nodes to plan entries by on-disk position.

    The kernel's enumeration order is not trusted: nodes are ordered by their
    start offset and each must carry the planned partition number and start
    inside its planned extent.

    Raises:
        PartitionCountMismatchError: Node count differs from the plan
        PartitionReconcileError: A node does not sit where the plan put it
    """
    disk = plan.disk_path
    if len(partition_paths) != len(plan):
        raise PartitionCountMismatchError(disk, len(plan), len(partition_paths))

    located = []
    for path in partition_paths:
        try:
            number, start_bytes = read_partition_layout(path, sys_root)
        except (OSError, ValueError) as error:
            raise PartitionReconcileError(
                f"Cannot read position of {path}: {error}", device=disk
            ) from error
        located.append((start_bytes, number, path))
    located.sort()

    partitions = []
    for entry, (start_bytes, number, path) in zip(plan.entries, located):
        if number != entry.index or not _entry_contains(entry, start_bytes):
            raise PartitionReconcileError(
                f"{path} (partition {number} at {start_bytes // MIB} MiB) does not match "
                f"planned partition {entry.index} at {entry.start_mib}-{entry.end_mib} MiB",
                device=disk,
            )
        partitions.append(CreatedPartition(entry=entry, device_path=path))
    return partitions
