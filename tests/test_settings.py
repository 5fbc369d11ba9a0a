"""
Tests for disk_slice.config.settings module.

This test suite covers:
- Default settings
- Loading overrides from a JSON file
- Error handling for missing or corrupted settings files
- SliceOptions normalisation
"""

import json
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from disk_slice.config import settings
from disk_slice.config.settings import SliceOptions, load_settings


class TestLoadSettings:
    """Tests for load_settings() function."""

    def test_load_defaults_when_no_file(self, tmp_path):
        """Test that default settings are loaded when file doesn't exist."""
        values = load_settings(tmp_path / "nonexistent" / "settings.json")

        assert values == settings.DEFAULT_SETTINGS
        assert values is not settings.DEFAULT_SETTINGS

    def test_load_from_existing_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"label_prefix": "vol", "mount_base": "/srv/vol"}))

        values = load_settings(path)

        assert values["label_prefix"] == "vol"
        assert values["mount_base"] == "/srv/vol"
        assert values["tool"] == settings.DEFAULT_TOOL

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"screensaver_enabled": True, "align_mib": 2}))

        values = load_settings(path)

        assert "screensaver_enabled" not in values
        assert values["align_mib"] == 2

    def test_load_handles_corrupted_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{ invalid json")

        assert load_settings(path) == settings.DEFAULT_SETTINGS

    def test_load_handles_non_dict_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps(["not", "a", "dict"]))

        assert load_settings(path) == settings.DEFAULT_SETTINGS

    @pytest.mark.parametrize(
        "key,value",
        [
            ("snippet_dir", None),
            ("snippet_dir", 42),
            ("align_mib", "1"),
            ("align_mib", True),
            ("align_mib", 2.5),
            ("label_prefix", ["vol"]),
            ("log_dir", 7),
        ],
    )
    def test_wrong_typed_values_keep_defaults(self, tmp_path, key, value):
        """Test a value of the wrong JSON type falls back to the default."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({key: value, "mount_base": "/srv/vol"}))

        values = load_settings(path)

        assert values[key] == settings.DEFAULT_SETTINGS[key]
        assert values["mount_base"] == "/srv/vol"

    def test_log_dir_accepts_null_and_string(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"log_dir": "/var/log/disk-slice"}))
        assert load_settings(path)["log_dir"] == "/var/log/disk-slice"

        path.write_text(json.dumps({"log_dir": None}))
        assert load_settings(path)["log_dir"] is None

    def test_default_path_from_module(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"tool": "parted"}))
        monkeypatch.setattr("disk_slice.config.settings.SETTINGS_PATH", path)

        assert load_settings()["tool"] == "parted"


class TestSliceOptions:
    """Tests for SliceOptions."""

    def test_defaults(self):
        options = SliceOptions()

        assert options.label_prefix == "data"
        assert options.mount_base == "/mnt/data"
        assert options.align_mib == 1
        assert options.tool == "sgdisk"
        assert options.dry_run is False

    def test_mount_now_implies_create_mounts(self):
        options = SliceOptions(mount_now=True)

        assert options.create_mounts is True

    def test_snippet_dir_becomes_path(self):
        assert SliceOptions(snippet_dir="/var/tmp").snippet_dir == Path("/var/tmp")

    def test_unknown_tool_rejected(self):
        with pytest.raises(ValueError, match="tool must be one of"):
            SliceOptions(tool="fdisk")

    def test_frozen(self):
        options = SliceOptions()

        with pytest.raises(FrozenInstanceError):
            options.dry_run = True
