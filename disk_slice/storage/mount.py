"""Mountpoint creation and mounting of freshly formatted partitions."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from disk_slice.domain.models import CreatedPartition, PlanEntry
from disk_slice.logging import LoggerFactory
from disk_slice.storage.devices import run_command
from disk_slice.storage.exceptions import CommandFailedError, ExecutionError

log = LoggerFactory.for_executor()


def _validate_mountpoint(mountpoint: str) -> Path:
    path = Path(mountpoint)
    if not path.is_absolute() or ".." in path.parts:
        raise ExecutionError(f"Refusing unsafe mountpoint: {mountpoint}")
    return path


def create_mountpoints(entries: Sequence[PlanEntry]) -> List[Path]:
    """mkdir -p every planned mountpoint."""
    created = []
    for entry in entries:
        path = _validate_mountpoint(entry.mountpoint)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise ExecutionError(
                f"Cannot create mountpoint {path}: {error}", device=str(path)
            ) from error
        log.debug(f"Created mountpoint {path}")
        created.append(path)
    return created


def mount_partition(partition: CreatedPartition) -> None:
    mountpoint = str(_validate_mountpoint(partition.entry.mountpoint))
    command = ["mount", partition.device_path, mountpoint]
    result = run_command(command, check=False)
    if result.returncode != 0:
        raise CommandFailedError(
            command, result.returncode, result.stderr or "", device=partition.device_path
        )
    log.info(f"Mounted {partition.device_path} at {mountpoint}")


def mount_partitions(partitions: Sequence[CreatedPartition]) -> None:
    for partition in partitions:
        mount_partition(partition)
