"""
Tests for storage/validation.py - target disk safety checks.

This test suite covers:
- Whole-disk classification
- Mount checks on the disk and its children
- Signature checks on existing children
- Check ordering and short-circuiting
"""

import subprocess

import pytest

from conftest import FakeInspector, completed
from disk_slice.storage.devices import BlockDeviceInspector
from disk_slice.storage.exceptions import (
    ChildHasSignatureError,
    ChildMountedError,
    DeviceInspectionError,
    DeviceMountedError,
    NotWholeDiskError,
    SafetyError,
)
from disk_slice.storage.validation import (
    validate_children_unused,
    validate_not_mounted,
    validate_target_disk,
    validate_whole_disk,
)


class TestValidateWholeDisk:
    """Tests for validate_whole_disk()."""

    def test_disk_passes(self, clean_inspector):
        validate_whole_disk("/dev/sdb", clean_inspector)  # Should not raise

    @pytest.mark.parametrize("device_type", ["part", "loop", "rom", "lvm", ""])
    def test_non_disk_rejected(self, device_type):
        inspector = FakeInspector(device_type=device_type)

        with pytest.raises(NotWholeDiskError) as exc_info:
            validate_whole_disk("/dev/sdb1", inspector)

        assert exc_info.value.device_type == device_type
        assert "/dev/sdb1" in str(exc_info.value)

    def test_unknown_type_message(self):
        with pytest.raises(NotWholeDiskError, match="TYPE=unknown"):
            validate_whole_disk("/dev/sdz", FakeInspector(device_type=""))


class TestValidateNotMounted:
    """Tests for validate_not_mounted()."""

    def test_unmounted_passes(self, clean_inspector):
        validate_not_mounted("/dev/sdb", clean_inspector)

    def test_mounted_disk_rejected(self):
        inspector = FakeInspector(mounted=["/dev/sdb"])

        with pytest.raises(DeviceMountedError):
            validate_not_mounted("/dev/sdb", inspector)


class TestValidateChildrenUnused:
    """Tests for validate_children_unused()."""

    def test_no_children(self, clean_inspector):
        validate_children_unused("/dev/sdb", clean_inspector)

    def test_blank_children_pass(self):
        inspector = FakeInspector(children={"/dev/sdb": ["/dev/sdb1", "/dev/sdb2"]})

        validate_children_unused("/dev/sdb", inspector)

        assert ("has_signature", "/dev/sdb2") in inspector.calls

    def test_mounted_child_rejected(self):
        inspector = FakeInspector(
            mounted=["/dev/sdb2"],
            children={"/dev/sdb": ["/dev/sdb1", "/dev/sdb2"]},
        )

        with pytest.raises(ChildMountedError) as exc_info:
            validate_children_unused("/dev/sdb", inspector)

        assert exc_info.value.child_path == "/dev/sdb2"

    def test_child_with_signature_rejected(self):
        inspector = FakeInspector(
            signatures=["/dev/sdb1"],
            children={"/dev/sdb": ["/dev/sdb1"]},
        )

        with pytest.raises(ChildHasSignatureError, match="/dev/sdb1"):
            validate_children_unused("/dev/sdb", inspector)

    def test_lvm_holder_child(self):
        """Test a mapper child (e.g. LVM LV on an existing PV) is checked too."""
        inspector = FakeInspector(
            mounted=["/dev/mapper/vg-data"],
            children={"/dev/sdb": ["/dev/sdb1", "/dev/mapper/vg-data"]},
        )

        with pytest.raises(ChildMountedError):
            validate_children_unused("/dev/sdb", inspector)


class TestValidateTargetDisk:
    """Tests for validate_target_disk() composition."""

    def test_clean_disk_passes(self, clean_inspector):
        validate_target_disk("/dev/sdb", clean_inspector)

        assert [name for name, _ in clean_inspector.calls] == [
            "classify",
            "is_mounted",
            "list_children",
        ]

    def test_partition_short_circuits(self):
        """Test a partition target fails before any mount or child query."""
        inspector = FakeInspector(device_type="part", mounted=["/dev/sdb1"])

        with pytest.raises(NotWholeDiskError):
            validate_target_disk("/dev/sdb1", inspector)

        assert inspector.calls == [("classify", "/dev/sdb1")]

    def test_mounted_disk_stops_before_children(self):
        inspector = FakeInspector(
            mounted=["/dev/sdb"],
            children={"/dev/sdb": ["/dev/sdb1"]},
        )

        with pytest.raises(DeviceMountedError):
            validate_target_disk("/dev/sdb", inspector)

        assert ("list_children", "/dev/sdb") not in inspector.calls

    def test_all_failures_are_safety_errors(self):
        inspector = FakeInspector(signatures=["/dev/nvme1n1p1"],
                                  children={"/dev/nvme1n1": ["/dev/nvme1n1p1"]})

        with pytest.raises(SafetyError):
            validate_target_disk("/dev/nvme1n1", inspector)

    def test_default_inspector_is_block_device_inspector(self, mocker):
        inspector_cls = mocker.patch("disk_slice.storage.validation.BlockDeviceInspector")
        inspector_cls.return_value.classify.return_value = "disk"
        inspector_cls.return_value.is_mounted.return_value = False
        inspector_cls.return_value.list_children.return_value = []

        validate_target_disk("/dev/sdb")

        inspector_cls.return_value.classify.assert_called_once_with("/dev/sdb")

    def test_unlistable_children_fail_closed(self, mocker):
        """Test a disk whose children cannot be listed is refused, not passed."""

        def fake_run(command, check=False, **kwargs):
            if command[:2] == ["lsblk", "-dno"]:
                return completed(stdout="disk\n")
            if command[0] == "findmnt":
                return completed(1)
            raise subprocess.CalledProcessError(32, command, "", "lsblk: not a block device")

        run = mocker.patch("subprocess.run", side_effect=fake_run)

        with pytest.raises(DeviceInspectionError, match="Cannot inspect /dev/sdb") as exc_info:
            validate_target_disk("/dev/sdb", BlockDeviceInspector())

        assert isinstance(exc_info.value, SafetyError)
        assert run.call_args[0][0][:2] == ["lsblk", "-npr"]
