"""Restored-size estimation and free-space checks.

Estimates are best effort: tar overhead, sparse files and block rounding are
not modelled, so every check adds a safety margin on top. Requirements
round up to whole KB; free space rounds down.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from docker_restore.domain import SpaceRequirement
from docker_restore.domain.models import DEFAULT_MARGIN_PERCENT
from docker_restore.logging import LoggerFactory
from docker_restore.storage.archive import (
    is_compressed_tar,
    read_gzip_isize,
    sum_tar_member_sizes,
)
from docker_restore.storage.exceptions import InsufficientSpaceError

log = LoggerFactory.for_space()


def estimate_targz_bytes(path: Path) -> int:
    """Estimate the uncompressed size of a .tar.gz archive.

    Prefers the gzip trailer size, falls back to summing the tar listing,
    and returns 0 if neither is available.
    """
    isize = read_gzip_isize(path)
    if isize is not None:
        return isize
    listed = sum_tar_member_sizes(path)
    if listed is not None:
        log.debug(f"Size of {path.name} taken from archive listing: {listed} bytes")
        return listed
    log.warning(f"WARNING: could not determine restored size of {path}; assuming 0")
    return 0


def file_size_bytes(path: Path) -> int:
    """On-disk size of an uncompressed export, or 0 if it cannot be read."""
    try:
        return path.stat().st_size
    except OSError as exc:
        log.warning(f"WARNING: could not stat {path}: {exc}; assuming 0")
        return 0


def estimate_restored_size(path: Path) -> int:
    """Best-effort restored footprint of a backup artifact, in bytes."""
    if is_compressed_tar(path):
        return estimate_targz_bytes(path)
    return file_size_bytes(path)


def available_kb(path: Path) -> Optional[int]:
    """Free kilobytes available to unprivileged writers at path.

    Returns None when the filesystem cannot be queried (missing path,
    unmounted target).
    """
    try:
        stats = os.statvfs(path)
    except OSError:
        return None
    return stats.f_bavail * stats.f_frsize // 1024


class SpaceGuard:
    """Abort a run when a target lacks room for what is about to land there."""

    def __init__(
        self,
        margin_percent: int = DEFAULT_MARGIN_PERCENT,
        free_space_reader: Callable[[Path], Optional[int]] = available_kb,
    ):
        self.margin_percent = margin_percent
        self.free_space_reader = free_space_reader

    def requirement(self, target_path: Path, required_kb: int) -> SpaceRequirement:
        return SpaceRequirement(
            target_path=Path(target_path),
            required_kb=required_kb,
            margin_percent=self.margin_percent,
        )

    def check_or_abort(
        self, target_path: Path, required_kb: int, description: str
    ) -> SpaceRequirement:
        """Verify free space for description, raising if it is short.

        Raises:
            InsufficientSpaceError: If free space is known and too small
        """
        requirement = self.requirement(target_path, required_kb)
        total_kb = requirement.effective_required_kb
        free_kb = self.free_space_reader(requirement.target_path)
        if free_kb is None:
            log.warning(
                f"WARNING: could not determine free space in {target_path}; continuing."
            )
            return requirement
        if free_kb < total_kb:
            raise InsufficientSpaceError(target_path, total_kb, free_kb, description)
        log.info(
            f"Space OK for {description} in {target_path} "
            f"(need ~{total_kb}KB, free {free_kb}KB)."
        )
        return requirement
