from __future__ import annotations

import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

_RUN_ID = f"restore-{uuid.uuid4().hex[:8]}"


def _should_log_command_output(record) -> bool:
    """Keep raw command output out of the console unless debugging."""
    tags = record["extra"].get("tags", [])
    if "output" in tags:
        return record["level"].no <= logger.level("DEBUG").no
    return True


def setup_logging(
    log_file: Path | None = None,
    *,
    debug: bool = False,
    console=None,
) -> Logger:
    """
    Setup logging with a console mirror and a persistent log file.

    Sinks:
    - stdout: every material action, INFO+ (DEBUG+ with debug=True)
    - log file: the same records, appended, timestamped, rotated at 10 MB

    Args:
        log_file: Persistent log destination; None logs to the console only
        debug: Enable DEBUG level logging (shows executed commands)
        console: Stream for the console sink (defaults to sys.stdout)
    """
    logger.remove()
    logger.configure(extra={"run_id": _RUN_ID, "tags": [], "source": "restore"})

    level = "DEBUG" if debug else "INFO"

    # SINK 1: Console (stdout) - mirrors the log file
    logger.add(
        console or sys.stdout,
        level=level,
        backtrace=False,
        diagnose=False,
        filter=_should_log_command_output if not debug else None,
        colorize=False,
        format="[{time:YYYY-MM-DD HH:mm:ss}] {message}",
    )

    # SINK 2: Persistent log file (console only until privileges are checked)
    if log_file is None:
        return logger
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        level=level,
        rotation="10 MB",
        retention="30 days",
        backtrace=False,
        diagnose=False,
        format=(
            "[{time:YYYY-MM-DD HH:mm:ss}] | "
            "{level: <8} | "
            "{extra[source]: <10} | "
            "{extra[run_id]} | "
            "{message}"
        ),
    )

    return logger


def get_logger(
    *,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        tags: Tags for filtering (e.g., ["space", "preflight"])
        source: Source component (e.g., "locator", "engine")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def stage_context(stage: str, **details):
    """
    Context manager for a pipeline stage with automatic timing.

    Logs stage completion or failure with its duration and re-raises failures.

    Example:
        with stage_context("volumes", count=3) as log:
            log.info("Restoring volumes...")
    """
    start_time = time.time()
    log = logger.bind(source=stage, tags=["stage", stage])
    log.debug(f"Stage '{stage}' started", **details)
    try:
        yield log
        duration = time.time() - start_time
        log.debug(
            f"Stage '{stage}' completed", duration_seconds=round(duration, 2)
        )
    except Exception as e:
        duration = time.time() - start_time
        # Positional args keep braces in command output from being formatted.
        log.bind(
            error_type=type(e).__name__,
            duration_seconds=round(duration, 2),
        ).error("ERROR: stage '{}' aborted: {}", stage, e)
        raise


class LoggerFactory:
    """
    Factory for creating component loggers with automatic context.
    """

    @staticmethod
    def for_locator() -> Logger:
        """Logger for backup set discovery."""
        return logger.bind(source="locator", tags=["snapshot"])

    @staticmethod
    def for_space() -> Logger:
        """Logger for size estimation and free-space checks."""
        return logger.bind(source="space", tags=["space", "preflight"])

    @staticmethod
    def for_engine() -> Logger:
        """Logger for container engine commands."""
        return logger.bind(source="engine", tags=["engine", "docker"])

    @staticmethod
    def for_compose() -> Logger:
        """Logger for compose front-end detection and launches."""
        return logger.bind(source="compose", tags=["compose"])

    @staticmethod
    def for_pipeline() -> Logger:
        """Logger for the restore sequence."""
        return logger.bind(source="pipeline", tags=["restore"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for startup checks and the CLI."""
        return logger.bind(source="system", tags=["system"])
