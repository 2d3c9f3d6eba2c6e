"""Custom exceptions for restore operations.

This module defines a hierarchy of exceptions for the restore tool so the CLI
can tell usage problems, failed preconditions and failed mutations apart.

Exception Hierarchy:
    RestoreError (base)
        ├── UsageError
        │   ├── PrivilegeError
        │   └── MissingToolError
        ├── PreconditionError
        │   ├── SnapshotNotFoundError
        │   ├── NoUsableContentError
        │   └── InsufficientSpaceError
        ├── MutationError
        └── CommandFailedError

Usage:
    from docker_restore.storage.exceptions import InsufficientSpaceError

    if free_kb < required_kb:
        raise InsufficientSpaceError(target, required_kb, free_kb, "image load")
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class RestoreError(Exception):
    """Base exception for all restore operations."""



class UsageError(RestoreError):
    """Base exception for startup errors raised before any snapshot work."""



class PrivilegeError(UsageError):
    """The tool was started without root privileges."""

    def __init__(self, euid: int):
        self.euid = euid
        super().__init__(f"Must run as root (effective uid {euid})")


class MissingToolError(UsageError):
    """A required external command is not on PATH."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Required command not found: {tool}")


class PreconditionError(RestoreError):
    """Base exception for checks that fail before any mutation."""



class SnapshotNotFoundError(PreconditionError):
    """No backup set matched the search, or the given path is missing."""

    def __init__(self, location: Path | str, prefix: str = ""):
        self.location = Path(location)
        self.prefix = prefix
        pattern = f"{self.location}/{prefix}*" if prefix else str(self.location)
        super().__init__(f"No full backup found at {pattern}")


class NoUsableContentError(PreconditionError):
    """A backup directory exists but holds no recognised artifact."""

    def __init__(self, snapshot_path: Path | str):
        self.snapshot_path = Path(snapshot_path)
        super().__init__(
            f"No usable backup content in {self.snapshot_path} "
            "(no volume archives, images, portainer_data or compose bundle)"
        )


class InsufficientSpaceError(PreconditionError):
    """Free space at a target location is below the effective requirement."""

    def __init__(
        self,
        target_path: Path | str,
        required_kb: int,
        free_kb: int,
        description: str = "",
    ):
        self.target_path = Path(target_path)
        self.required_kb = required_kb
        self.free_kb = free_kb
        self.shortfall_kb = required_kb - free_kb
        self.description = description
        what = f" for {description}" if description else ""
        super().__init__(
            f"Insufficient space{what} in {self.target_path}: "
            f"need ~{required_kb}KB, free {free_kb}KB "
            f"(short by {self.shortfall_kb}KB)"
        )


class MutationError(RestoreError):
    """A state-changing action failed; the run cannot continue."""

    def __init__(self, description: str, cause: str):
        self.description = description
        self.cause = cause
        super().__init__(f"{description} failed: {cause}")


class CommandFailedError(RestoreError):
    """An external command exited with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        output: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.output = output or ""
        message = self.output.strip() or "Command failed"
        super().__init__(f"Command failed ({' '.join(self.command)}): {message}")
