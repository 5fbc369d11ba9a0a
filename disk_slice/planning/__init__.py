"""Partition planning: layout arithmetic and filesystem assignment.

Main Functions:
    - build_plan(): Full plan for a disk (layout + filesystems)
    - plan_extents(): Extent arithmetic for equal or percentage splits
    - assign_filesystems(): Pair extents with filesystem, label, mountpoint

Parsing:
    - split_from_args(), parse_count(), parse_layout()
    - parse_filesystem(), parse_filesystem_list()
"""

from .filesystems import (
    assign_filesystems,
    parse_filesystem,
    parse_filesystem_list,
    resolve_filesystems,
)
from .layout import MIN_EXTENT_MIB, plan_extents, validate_alignment, verify_extents
from .plan import build_plan
from .split import parse_count, parse_layout, split_from_args

__all__ = [
    "build_plan",
    "plan_extents",
    "verify_extents",
    "validate_alignment",
    "MIN_EXTENT_MIB",
    "assign_filesystems",
    "resolve_filesystems",
    "parse_filesystem",
    "parse_filesystem_list",
    "parse_count",
    "parse_layout",
    "split_from_args",
]
