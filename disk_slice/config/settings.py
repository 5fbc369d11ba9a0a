"""Settings and run options.

Defaults live here as constants. An optional JSON file can override them per
host; command-line flags override both. The result is a frozen SliceOptions
value that is passed explicitly to every component.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

SETTINGS_PATH = Path(
    os.environ.get(
        "DISK_SLICE_SETTINGS_PATH",
        Path.home() / ".config" / "disk-slice" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_LABEL_PREFIX = "data"
DEFAULT_MOUNT_BASE = "/mnt/data"
DEFAULT_ALIGN_MIB = 1
DEFAULT_TOOL = "sgdisk"
DEFAULT_SNIPPET_DIR = os.environ.get("DISK_SLICE_SNIPPET_DIR", "/root")

SUPPORTED_TOOLS = ("sgdisk", "parted")

DEFAULT_SETTINGS: dict[str, Any] = {
    "label_prefix": DEFAULT_LABEL_PREFIX,
    "mount_base": DEFAULT_MOUNT_BASE,
    "align_mib": DEFAULT_ALIGN_MIB,
    "tool": DEFAULT_TOOL,
    "snippet_dir": DEFAULT_SNIPPET_DIR,
    "log_dir": None,
}

# Accepted JSON types per key; anything else falls back to the default.
SETTING_TYPES: dict[str, tuple] = {
    "label_prefix": (str,),
    "mount_base": (str,),
    "align_mib": (int,),
    "tool": (str,),
    "snippet_dir": (str,),
    "log_dir": (str, type(None)),
}


def _valid_setting(key: str, value: Any) -> bool:
    # bool is an int subclass; "align_mib": true is not an alignment.
    if isinstance(value, bool):
        return False
    return isinstance(value, SETTING_TYPES[key])


def load_settings(path: Optional[Path] = None) -> dict[str, Any]:
    """Return defaults merged with the settings file, if it is readable.

    Unknown keys and values of the wrong JSON type are ignored; a missing,
    unreadable or malformed file yields the defaults.
    """
    values = dict(DEFAULT_SETTINGS)
    path = Path(path) if path is not None else SETTINGS_PATH
    if not path.exists():
        return values
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return values
    if isinstance(data, dict):
        values.update(
            {
                key: data[key]
                for key in DEFAULT_SETTINGS
                if key in data and _valid_setting(key, data[key])
            }
        )
    return values


@dataclass(frozen=True)
class SliceOptions:
    """Immutable options for one invocation."""

    label_prefix: str = DEFAULT_LABEL_PREFIX
    mount_base: str = DEFAULT_MOUNT_BASE
    align_mib: int = DEFAULT_ALIGN_MIB
    tool: str = DEFAULT_TOOL
    snippet_dir: Path = Path(DEFAULT_SNIPPET_DIR)
    create_mounts: bool = False
    mount_now: bool = False
    assume_yes: bool = False
    dry_run: bool = False
    verbose: bool = False
    log_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.tool not in SUPPORTED_TOOLS:
            raise ValueError(f"tool must be one of {', '.join(SUPPORTED_TOOLS)}, got {self.tool!r}")
        # --mount-now implies --create-mounts
        if self.mount_now and not self.create_mounts:
            object.__setattr__(self, "create_mounts", True)
        object.__setattr__(self, "snippet_dir", Path(self.snippet_dir))
