"""Environment checks that run before the safety validator."""

from __future__ import annotations

import os
import shutil
import stat
from typing import Iterable, List

from disk_slice.domain.models import Filesystem
from disk_slice.storage.exceptions import MissingToolError, NotBlockDeviceError, NotRootError

INSPECTION_TOOLS = ("lsblk", "blkid", "findmnt")
PARTITION_TOOLS = ("partprobe", "sgdisk")


def require_block_device(device_path: str) -> None:
    try:
        mode = os.stat(device_path).st_mode
    except OSError:
        raise NotBlockDeviceError(device_path) from None
    if not stat.S_ISBLK(mode):
        raise NotBlockDeviceError(device_path)


def require_root(dry_run: bool) -> None:
    if not dry_run and os.geteuid() != 0:
        raise NotRootError()


def required_tools(
    tool: str, filesystems: Iterable[Filesystem], dry_run: bool
) -> List[str]:
    """Commands a run needs; a dry run only inspects, so it needs fewer."""
    tools = list(INSPECTION_TOOLS)
    if dry_run:
        return tools
    tools.extend(PARTITION_TOOLS)
    if tool == "parted":
        tools.append("parted")
    for filesystem in filesystems:
        if filesystem.mkfs_tool not in tools:
            tools.append(filesystem.mkfs_tool)
    return tools


def require_tools(tools: Iterable[str]) -> None:
    for tool in tools:
        if shutil.which(tool) is None:
            raise MissingToolError(tool)
