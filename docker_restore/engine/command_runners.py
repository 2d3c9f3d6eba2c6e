"""Command execution utilities."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional, Sequence

from docker_restore.logging import get_logger
from docker_restore.storage.exceptions import CommandFailedError

log = get_logger(source="command", tags=["command"])


def run_checked_command(
    command: Sequence[str],
    input_text: Optional[str] = None,
    cwd: Optional[Path] = None,
) -> str:
    """Run a command and raise CommandFailedError if it fails."""
    log.debug(f"Running command: {' '.join(command)}")
    result = subprocess.run(
        list(command),
        input=input_text,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=str(cwd) if cwd is not None else None,
    )
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        stdout = (result.stdout or "").strip()
        message = stderr or stdout or "Command failed"
        log.bind(tags=["command", "output"]).debug(
            f"Command exited {result.returncode}: {message}"
        )
        raise CommandFailedError(command, result.returncode, message)
    return result.stdout or ""


def command_succeeds(command: Sequence[str]) -> bool:
    """Run a check command, returning True on exit status 0."""
    try:
        result = subprocess.run(
            list(command),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError:
        return False
    return result.returncode == 0


__all__ = [
    "command_succeeds",
    "run_checked_command",
]
