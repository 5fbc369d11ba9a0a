"""Loguru configuration for disk-slice.

Every record carries three extras: ``source`` (component), ``tags`` (for
filtering) and ``job_id`` (one per destructive run). Component modules get
their logger from LoggerFactory at import time; setup_logging() only decides
where records go.
"""

from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Union

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_DIR = Path(
    os.environ.get(
        "DISK_SLICE_LOG_DIR",
        Path.home() / ".local" / "state" / "disk-slice" / "logs",
    )
)

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[source]: <9}</cyan> | "
    "{message}"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[source]: <9} | {extra[job_id]: <15} | {message}"
)

COMMAND_OUTPUT_TAG = "command-output"


def _should_log_command_output(record) -> bool:
    """Keep raw tool stdout/stderr off the console unless it is a failure."""
    if COMMAND_OUTPUT_TAG not in record["extra"].get("tags", []):
        return True
    return record["level"].no >= logger.level("WARNING").no


def _add_console_sink(verbose: bool) -> None:
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        filter=None if verbose else _should_log_command_output,
        format=CONSOLE_FORMAT,
        colorize=True,
        backtrace=False,
        diagnose=False,
    )


def _add_file_sinks(log_dir: Path, verbose: bool) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    # Human-readable history of every run on this host.
    logger.add(
        log_dir / "operations.log",
        level="DEBUG" if verbose else "INFO",
        format=FILE_FORMAT,
        rotation="5 MB",
        retention="7 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
    )
    # One JSON object per record, for audits of what was done to which disk.
    logger.add(
        log_dir / "structured.jsonl",
        level="INFO",
        serialize=True,
        format="{message}",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )


def setup_logging(
    *,
    verbose: bool = False,
    log_dir: Union[Path, bool, None] = None,
) -> Logger:
    """
    Configure sinks for one invocation.

    Sinks:
    - stderr: INFO+ (DEBUG+ with verbose); raw command output hidden unless verbose
    - operations.log: text history, rotated at 5 MB, kept 7 days
    - structured.jsonl: serialized INFO+ records

    Args:
        verbose: Log DEBUG records to the console and operations.log
        log_dir: Directory for the file sinks (DEFAULT_LOG_DIR when None);
            False disables them. An unwritable directory leaves only the
            console sink.
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "disk-slice"})
    _add_console_sink(verbose)
    if log_dir is not False:
        directory = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
        try:
            _add_file_sinks(directory, verbose)
        except OSError as error:
            logger.bind(source="system").warning(
                f"File logging disabled, cannot write to {directory}: {error}"
            )
    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """Logger with whichever of job_id / tags / source are given bound to it."""
    context = {
        key: value
        for key, value in (("job_id", job_id), ("source", source))
        if value is not None
    }
    if tags is not None:
        context["tags"] = list(tags)
    return logger.bind(**context)


def new_job_id(operation: str) -> str:
    return f"{operation}-{uuid.uuid4().hex[:8]}"


@contextmanager
def operation_context(operation: str, **details) -> Iterator[Logger]:
    """
    Bracket a destructive operation with start / completed / failed records.

    All records logged inside the block, from any module, share one job_id.

    Example:
        with operation_context("slice", disk="/dev/sdb") as log:
            log.info("Writing partition table")
    """
    job_id = new_job_id(operation)
    title = operation.capitalize()
    log = get_logger(job_id=job_id, tags=[operation], source=operation)

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        started = time.monotonic()
        log.info(f"{title} started", **details)
        try:
            yield log
        except Exception as error:
            log.error(
                f"{title} failed",
                error=str(error),
                error_type=type(error).__name__,
                duration_seconds=round(time.monotonic() - started, 2),
            )
            raise
        log.success(f"{title} completed", duration_seconds=round(time.monotonic() - started, 2))


class LoggerFactory:
    """Component loggers, bound once per module."""

    @staticmethod
    def for_planner() -> Logger:
        """Logger for layout planning and filesystem assignment."""
        return get_logger(source="planner", tags=["planner"])

    @staticmethod
    def for_safety() -> Logger:
        """Logger for pre-flight and safety validation."""
        return get_logger(source="safety", tags=["safety", "storage"])

    @staticmethod
    def for_executor(job_id: str | None = None) -> Logger:
        """Logger for partitioning, formatting and mounting.

        Without an explicit job_id the record picks up the one set by
        operation_context().
        """
        return get_logger(job_id=job_id, source="executor", tags=["executor", "storage"])

    @staticmethod
    def for_commands() -> Logger:
        """Logger for raw external command output."""
        return get_logger(source="command", tags=[COMMAND_OUTPUT_TAG])

    @staticmethod
    def for_system() -> Logger:
        return get_logger(source="system", tags=["system"])
