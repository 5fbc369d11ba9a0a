"""Human-readable rendering of a plan for review before confirmation."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from disk_slice.config.settings import SliceOptions
from disk_slice.domain.models import Plan
from disk_slice.storage.executor import ToolCommand


def format_plan_lines(plan: Plan, options: SliceOptions, snippet: Path) -> List[str]:
    geometry = plan.geometry
    lines = [
        "=== PLAN ===",
        f"Disk: {plan.disk_path}  size: {geometry.total_mib} MiB  sector: {geometry.sector_bytes}B",
        "Label: GPT (new)",
    ]
    for entry in plan.entries:
        lines.append(
            f"  p{entry.index}: {entry.start_mib}MiB -> {entry.end_mib}MiB   "
            f"FS={entry.filesystem.value}   label={entry.label}  mount={entry.mountpoint}"
        )
    lines.append(
        f"Tool: {options.tool}   Align: {plan.align_mib}MiB   "
        f"create-mounts={int(options.create_mounts)}   mount-now={int(options.mount_now)}"
    )
    lines.append(f"FSTAB snippet will be written to {snippet}")
    lines.append("============")
    return lines


def format_command_lines(commands: Sequence[ToolCommand]) -> List[str]:
    return [f"[DRY-RUN] {command}" for command in commands]
