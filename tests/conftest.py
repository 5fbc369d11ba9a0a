"""
Pytest configuration and shared fixtures for disk-slice tests.

This module provides common fixtures and utilities used across all test modules.
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest

from disk_slice.config.settings import SliceOptions
from disk_slice.domain.models import MIB, DiskGeometry, Filesystem
from disk_slice.planning import build_plan


# ==============================================================================
# Geometry Fixtures
# ==============================================================================


def geometry_of(total_mib: int, sector_bytes: int = 512) -> DiskGeometry:
    """Build a geometry for a disk of exactly ``total_mib`` MiB."""
    return DiskGeometry(total_bytes=total_mib * MIB, sector_bytes=sector_bytes)


@pytest.fixture
def million_mib_disk() -> DiskGeometry:
    """A 1,000,000 MiB disk with 512-byte sectors."""
    return geometry_of(1_000_000)


@pytest.fixture
def small_disk() -> DiskGeometry:
    """A 1000 MiB disk, handy for readable boundaries."""
    return geometry_of(1000)


# ==============================================================================
# Device Inspection Fixtures
# ==============================================================================


class FakeInspector:
    """In-memory stand-in for lsblk/findmnt/blkid."""

    def __init__(
        self,
        device_type: str = "disk",
        mounted: Optional[List[str]] = None,
        signatures: Optional[List[str]] = None,
        children: Optional[Dict[str, List[str]]] = None,
    ):
        self.device_type = device_type
        self.mounted = set(mounted or [])
        self.signatures = set(signatures or [])
        self.children = children or {}
        self.calls: List[tuple] = []

    def classify(self, device_path):
        self.calls.append(("classify", device_path))
        return self.device_type

    def is_mounted(self, device_path):
        self.calls.append(("is_mounted", device_path))
        return device_path in self.mounted

    def has_signature(self, device_path):
        self.calls.append(("has_signature", device_path))
        return device_path in self.signatures

    def list_children(self, device_path):
        self.calls.append(("list_children", device_path))
        return list(self.children.get(device_path, []))


@pytest.fixture
def clean_inspector() -> FakeInspector:
    """A blank whole disk with no children and no mounts."""
    return FakeInspector()


# ==============================================================================
# Sysfs Fixtures
# ==============================================================================


def write_block_device(
    sys_root: Path,
    name: str,
    size_512: int,
    logical_block_size: int = 512,
) -> Path:
    """Create /sys/class/block/<name> entries for a disk."""
    base = sys_root / name
    (base / "queue").mkdir(parents=True, exist_ok=True)
    (base / "size").write_text(f"{size_512}\n")
    (base / "queue" / "logical_block_size").write_text(f"{logical_block_size}\n")
    return base


def write_partition(sys_root: Path, name: str, number: int, start_mib: int) -> Path:
    """Create /sys/class/block/<name> entries for a partition."""
    base = sys_root / name
    base.mkdir(parents=True, exist_ok=True)
    (base / "partition").write_text(f"{number}\n")
    (base / "start").write_text(f"{start_mib * MIB // 512}\n")
    return base


@pytest.fixture
def sys_root(tmp_path) -> Path:
    """Empty fake /sys/class/block directory."""
    root = tmp_path / "sys" / "class" / "block"
    root.mkdir(parents=True)
    return root


# ==============================================================================
# Plan Fixtures
# ==============================================================================


@pytest.fixture
def three_way_plan(small_disk):
    """Equal three-way ext4/xfs/btrfs plan on /dev/sdb (1000 MiB)."""
    from disk_slice.domain.models import EqualCount

    return build_plan(
        "/dev/sdb",
        small_disk,
        EqualCount(3),
        [Filesystem.EXT4, Filesystem.XFS, Filesystem.BTRFS],
        label_prefix="data",
        mount_base="/mnt/data",
        align_mib=1,
    )


@pytest.fixture
def dry_run_options(tmp_path) -> SliceOptions:
    return SliceOptions(dry_run=True, snippet_dir=tmp_path / "snippets")


@pytest.fixture
def real_run_options(tmp_path) -> SliceOptions:
    return SliceOptions(assume_yes=True, snippet_dir=tmp_path / "snippets")


# ==============================================================================
# Subprocess Mock Fixtures
# ==============================================================================


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> Mock:
    result = Mock(spec=subprocess.CompletedProcess)
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


@pytest.fixture
def mock_subprocess_success(mocker) -> Mock:
    """
    Fixture providing a mock subprocess.run that always succeeds.

    Returns:
        Mock object for subprocess.run.
    """
    return mocker.patch("subprocess.run", return_value=completed())
