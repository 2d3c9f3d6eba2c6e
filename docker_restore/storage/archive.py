"""Compressed-tar archive utilities.

Reading is done in-process (gzip trailer and tar listing); extraction on the
host shells out to ``tar`` like every other mutating command.
"""

from __future__ import annotations

import struct
import tarfile
from pathlib import Path
from typing import Callable, Optional

from docker_restore.engine.command_runners import run_checked_command

COMPRESSED_TAR_SUFFIX = ".tar.gz"
GZIP_MAGIC = b"\x1f\x8b"
# Smallest valid gzip member: 10 byte header + empty deflate block + 8 byte trailer
GZIP_MIN_SIZE = 18
# gzip -l reports this when it cannot know the size
ISIZE_SENTINEL = 0xFFFFFFFF


def is_compressed_tar(path: Path) -> bool:
    """Check if a file name looks like a gzip-compressed tarball."""
    return path.name.endswith(COMPRESSED_TAR_SUFFIX)


def strip_compressed_tar_suffix(filename: str) -> str:
    if filename.endswith(COMPRESSED_TAR_SUFFIX):
        return filename[: -len(COMPRESSED_TAR_SUFFIX)]
    return filename


def read_gzip_isize(path: Path) -> Optional[int]:
    """Read the uncompressed size stored in a gzip trailer.

    Returns None when the file is not gzip data, the field holds the
    "unknown" sentinel, or the value is smaller than the compressed file.
    The field is the size modulo 2**32.
    """
    try:
        with open(path, "rb") as handle:
            if handle.read(2) != GZIP_MAGIC:
                return None
            handle.seek(0, 2)
            compressed_size = handle.tell()
            if compressed_size < GZIP_MIN_SIZE:
                return None
            handle.seek(-4, 2)
            trailer = handle.read(4)
    except OSError:
        return None
    (isize,) = struct.unpack("<I", trailer)
    if isize == ISIZE_SENTINEL:
        return None
    # Saturated: the field wrapped past 4 GiB.
    if isize < compressed_size:
        return None
    return isize


def sum_tar_member_sizes(path: Path) -> Optional[int]:
    """Sum the sizes listed in a compressed tarball's table of contents.

    Reads every member header, so it costs a full pass over the archive.
    Stream mode reads headers in order and does not trust the gzip trailer.
    Returns None if the archive cannot be read.
    """
    total = 0
    try:
        with tarfile.open(path, mode="r|*") as archive:
            for member in archive:
                if member.isfile():
                    total += member.size
    except (OSError, tarfile.TarError, EOFError):
        return None
    return total


def extract_archive(
    archive: Path,
    destination: Path,
    runner: Callable[..., str] = run_checked_command,
) -> None:
    """Extract a compressed tarball into a host directory, overwriting files.

    Raises:
        CommandFailedError: If tar fails (unreadable archive, write error)
    """
    runner(["tar", "-xzf", str(archive), "-C", str(destination)])
