"""Commented /etc/fstab snippet for the new filesystems.

The snippet is written for manual review and never appended to /etc/fstab.
Each partition gets a block like::

    # /mnt/data1 (ext4)
    # UUID=0b6d...  /mnt/data1  ext4  defaults,noatime  0  2

The fsck pass is 0 for xfs (which has no fsck) and 2 for everything else.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from disk_slice.domain.models import CreatedPartition
from disk_slice.logging import LoggerFactory

log = LoggerFactory.for_executor()

MOUNT_OPTIONS = "defaults,noatime"
DUMP = 0


def snippet_path(disk_path: str, snippet_dir: Path) -> Path:
    """``<snippet_dir>/fstab.new.<disk name>.txt``."""
    return Path(snippet_dir) / f"fstab.new.{Path(disk_path).name}.txt"


def format_fstab_line(uuid: str, mountpoint: str, fstype: str, fs_pass: int) -> str:
    return f"# UUID={uuid}  {mountpoint}  {fstype}  {MOUNT_OPTIONS}  {DUMP}  {fs_pass}"


def render_fstab_snippet(
    partitions: Sequence[CreatedPartition],
    generated_at: Optional[datetime] = None,
) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    timestamp = generated_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    lines: List[str] = [f"# fstab snippet generated by disk-slice {timestamp}"]
    for partition in partitions:
        entry = partition.entry
        fstype = entry.filesystem.value
        lines.append(f"# {entry.mountpoint} ({fstype})")
        lines.append(
            format_fstab_line(
                partition.uuid or "", entry.mountpoint, fstype, entry.filesystem.fstab_pass
            )
        )
        lines.append("")
    return "\n".join(lines) + "\n"


def write_fstab_snippet(
    partitions: Sequence[CreatedPartition],
    path: Path,
    generated_at: Optional[datetime] = None,
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_fstab_snippet(partitions, generated_at), encoding="utf-8")
    log.info(f"Commented fstab snippet written to: {path}")
    return path
