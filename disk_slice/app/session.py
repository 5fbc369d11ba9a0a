"""One disk-slice invocation as an explicit state machine.

    VALIDATING -> PLANNING -> AWAITING_CONFIRMATION -> EXECUTING -> DONE
    VALIDATING -> PLANNING -> REPORT_ONLY                        (dry run)

Any failure while validating or planning moves to ABORTED before anything
destructive has happened. An operator answering "no" moves to DECLINED.
A failure while executing also ends in ABORTED, but the disk may already be
partially configured; there is no rollback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from disk_slice.app.report import format_command_lines, format_plan_lines
from disk_slice.config.settings import SliceOptions
from disk_slice.domain.models import CreatedPartition, Plan, SplitSpec
from disk_slice.logging import LoggerFactory, operation_context
from disk_slice.planning import build_plan, resolve_filesystems, validate_alignment
from disk_slice.planning.filesystems import FilesystemInput
from disk_slice.storage import mount, preflight
from disk_slice.storage.devices import BlockDeviceInspector
from disk_slice.storage.executor import Executor, get_executor, partition_node
from disk_slice.storage.fstab import render_fstab_snippet, snippet_path, write_fstab_snippet
from disk_slice.storage.geometry import read_geometry
from disk_slice.storage.validation import DeviceInspector, validate_target_disk

log = LoggerFactory.for_system()


class SessionState(Enum):
    VALIDATING = "validating"
    PLANNING = "planning"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTING = "executing"
    DONE = "done"
    REPORT_ONLY = "report_only"
    DECLINED = "declined"
    ABORTED = "aborted"


TERMINAL_STATES = {
    SessionState.DONE,
    SessionState.REPORT_ONLY,
    SessionState.DECLINED,
    SessionState.ABORTED,
}


@dataclass(frozen=True)
class SliceRequest:
    """What the operator asked for."""

    disk_path: str
    split: SplitSpec
    filesystems: FilesystemInput


@dataclass
class SessionResult:
    state: SessionState
    plan: Optional[Plan] = None
    partitions: List[CreatedPartition] = field(default_factory=list)
    snippet: Optional[Path] = None


def prompt_confirmation(question: str = "Proceed? [y/N] ") -> bool:
    """Ask on stdin; only 'y' or 'Y' proceeds."""
    try:
        answer = input(question)
    except EOFError:
        return False
    return answer.strip() in ("y", "Y")


class SliceSession:
    """Runs a request through validation, planning and (maybe) execution."""

    def __init__(
        self,
        options: SliceOptions,
        *,
        inspector: Optional[DeviceInspector] = None,
        executor: Optional[Executor] = None,
        geometry_reader: Callable = read_geometry,
        confirm: Callable[[], bool] = prompt_confirmation,
        output: Callable[[str], None] = print,
        check_environment: bool = True,
    ):
        self.options = options
        self.inspector = inspector or BlockDeviceInspector()
        self.executor = executor or get_executor(options.tool)
        self.geometry_reader = geometry_reader
        self.confirm = confirm
        self.output = output
        self.check_environment = check_environment
        self.state = SessionState.VALIDATING
        self.history: List[SessionState] = [SessionState.VALIDATING]

    def _transition(self, state: SessionState) -> None:
        log.debug(f"Session {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _emit(self, lines: Sequence[str]) -> None:
        for line in lines:
            self.output(line)

    def run(self, request: SliceRequest) -> SessionResult:
        try:
            plan = self._validate_and_plan(request)
        except Exception:
            self._transition(SessionState.ABORTED)
            raise

        snippet = snippet_path(plan.disk_path, self.options.snippet_dir)
        self._emit([""] + format_plan_lines(plan, self.options, snippet) + [""])

        if self.options.dry_run:
            self._report_dry_run(plan)
            self._transition(SessionState.REPORT_ONLY)
            return SessionResult(state=self.state, plan=plan)

        self._transition(SessionState.AWAITING_CONFIRMATION)
        if not (self.options.assume_yes or self.confirm()):
            self.output("Aborted.")
            self._transition(SessionState.DECLINED)
            return SessionResult(state=self.state, plan=plan)

        self._transition(SessionState.EXECUTING)
        try:
            partitions = self._execute(plan, snippet)
        except Exception:
            self._transition(SessionState.ABORTED)
            raise
        self._transition(SessionState.DONE)
        return SessionResult(state=self.state, plan=plan, partitions=partitions, snippet=snippet)

    def _validate_and_plan(self, request: SliceRequest) -> Plan:
        options = self.options
        disk = request.disk_path

        # Input-only checks first: nothing below may run on bad arguments.
        filesystems = resolve_filesystems(request.filesystems, request.split.partition_count)
        validate_alignment(options.align_mib)

        if self.check_environment:
            preflight.require_block_device(disk)
            preflight.require_root(options.dry_run)
            preflight.require_tools(
                preflight.required_tools(options.tool, filesystems, options.dry_run)
            )

        validate_target_disk(disk, self.inspector)

        self._transition(SessionState.PLANNING)
        geometry = self.geometry_reader(disk)
        return build_plan(
            disk,
            geometry,
            request.split,
            filesystems,
            label_prefix=options.label_prefix,
            mount_base=options.mount_base,
            align_mib=options.align_mib,
        )

    def _report_dry_run(self, plan: Plan) -> None:
        self._emit(format_command_lines(self.executor.planned_commands(plan)))
        if self.options.create_mounts:
            self._emit([f"[DRY-RUN] mkdir -p {entry.mountpoint}" for entry in plan.entries])
        placeholders = [
            CreatedPartition(
                entry=entry,
                device_path=partition_node(plan.disk_path, entry.index),
                uuid=f"DRYRUN-UUID-{entry.index}",
            )
            for entry in plan.entries
        ]
        self._emit([""] + render_fstab_snippet(placeholders).splitlines())

    def _execute(self, plan: Plan, snippet: Path) -> List[CreatedPartition]:
        with operation_context("slice", disk=plan.disk_path, tool=self.executor.tool) as op_log:
            partitions = self.executor.apply(plan)

            if self.options.create_mounts:
                mount.create_mountpoints(plan.entries)

            write_fstab_snippet(partitions, snippet)
            self.output("Review and then append (uncomment) to /etc/fstab as needed.")

            if self.options.mount_now:
                mount.mount_partitions(partitions)
                op_log.info(f"Mounted new filesystems under {self.options.mount_base}*")
        return partitions
