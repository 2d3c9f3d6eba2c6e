"""Backup set discovery and inventory.

A full backup set is a directory named ``<prefix><date>`` under the backup
root, holding:

- ``<volume>_<date>.tar.gz`` archives, one per named volume
- ``portainer_data_<date>.tar.gz`` for the Portainer data volume
- ``docker_compose_files_<date>.tar.gz`` with the compose project files
- ``images/*.tar`` exported images
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Optional, Union

from docker_restore.config.settings import (
    APP_DATA_ARCHIVE_PREFIX,
    APP_DATA_VOLUME,
    COMPOSE_ARCHIVE_PREFIX,
)
from docker_restore.domain import ImageArchiveEntry, SnapshotSet, VolumeArchiveEntry
from docker_restore.logging import LoggerFactory
from docker_restore.storage.archive import COMPRESSED_TAR_SUFFIX, strip_compressed_tar_suffix
from docker_restore.storage.exceptions import NoUsableContentError, SnapshotNotFoundError
from docker_restore.storage.space import estimate_restored_size

log = LoggerFactory.for_locator()

IMAGES_SUBDIR = "images"
IMAGE_SUFFIX = ".tar"

_VERSION_CHUNK = re.compile(r"(\d+)")


def version_sort_key(name: str) -> tuple[tuple[int, Union[int, str]], ...]:
    """Sort key comparing digit runs numerically (like ``sort -V``).

    Example: "backup_2025-9-5" < "backup_2025-9-15"
    """
    key = []
    for chunk in _VERSION_CHUNK.split(name):
        if not chunk:
            continue
        if chunk.isdigit():
            key.append((0, int(chunk)))
        else:
            key.append((1, chunk))
    return tuple(key)


def list_snapshot_dirs(backup_root: Path, prefix: str) -> list[Path]:
    """List entries under backup_root starting with prefix, oldest first."""
    if not backup_root.is_dir():
        return []
    matches = [entry for entry in backup_root.iterdir() if entry.name.startswith(prefix)]
    return sorted(matches, key=lambda path: version_sort_key(path.name))


def locate_snapshot(
    backup_root: Path,
    prefix: str,
    explicit: Optional[Path] = None,
) -> Path:
    """Select the backup set to restore.

    An explicit path is returned as-is; otherwise the most recent entry
    matching prefix is selected.

    Raises:
        SnapshotNotFoundError: If no entry matches
    """
    if explicit is not None:
        log.info(f"Using backup given on the command line: {explicit}")
        return Path(explicit)
    candidates = list_snapshot_dirs(backup_root, prefix)
    if not candidates:
        raise SnapshotNotFoundError(backup_root, prefix)
    selected = candidates[-1]
    log.info(f"Selected full backup: {selected}")
    return selected


def derive_volume_name(filename: str) -> str:
    """Derive a volume name from its archive file name.

    Strips the .tar.gz suffix and the trailing ``_<date>`` segment:
    "nextcloud_db_2025-09-20.tar.gz" -> "nextcloud_db".
    Returns "" when nothing is left.
    """
    stem = strip_compressed_tar_suffix(filename)
    if "_" not in stem:
        return stem
    return stem.rsplit("_", 1)[0]


def is_app_data_archive(filename: str) -> bool:
    return filename.startswith(APP_DATA_ARCHIVE_PREFIX) and filename.endswith(
        COMPRESSED_TAR_SUFFIX
    )


def is_compose_archive(filename: str) -> bool:
    return filename.startswith(COMPOSE_ARCHIVE_PREFIX) and filename.endswith(
        COMPRESSED_TAR_SUFFIX
    )


def _date_token(snapshot_dir: Path, prefix: str) -> str:
    name = snapshot_dir.name
    if prefix and name.startswith(prefix):
        return name[len(prefix):]
    return name


def load_snapshot(
    snapshot_dir: Path,
    prefix: str = "",
    estimator: Callable[[Path], int] = estimate_restored_size,
) -> SnapshotSet:
    """Inventory a backup set directory.

    Raises:
        SnapshotNotFoundError: If the directory does not exist
        NoUsableContentError: If it holds no recognised artifact
    """
    if not snapshot_dir.is_dir():
        raise SnapshotNotFoundError(snapshot_dir)

    volumes: list[VolumeArchiveEntry] = []
    app_data: Optional[VolumeArchiveEntry] = None
    compose_archive: Optional[Path] = None
    compose_bytes = 0

    for archive in sorted(snapshot_dir.glob(f"*{COMPRESSED_TAR_SUFFIX}")):
        if not archive.is_file():
            continue
        name = archive.name
        if is_app_data_archive(name):
            if app_data is None:
                app_data = VolumeArchiveEntry(
                    volume_name=APP_DATA_VOLUME,
                    archive_path=archive,
                    estimated_bytes=estimator(archive),
                )
            continue
        if is_compose_archive(name):
            if compose_archive is None:
                compose_archive = archive
                compose_bytes = estimator(archive)
            continue
        volume_name = derive_volume_name(name)
        if not volume_name:
            log.info(f"Skipping {archive}: could not derive a volume name")
            continue
        volumes.append(
            VolumeArchiveEntry(
                volume_name=volume_name,
                archive_path=archive,
                estimated_bytes=estimator(archive),
            )
        )

    images: list[ImageArchiveEntry] = []
    images_dir = snapshot_dir / IMAGES_SUBDIR
    if images_dir.is_dir():
        for image in sorted(images_dir.glob(f"*{IMAGE_SUFFIX}")):
            if image.is_file():
                images.append(
                    ImageArchiveEntry(
                        name=image.name, path=image, size_bytes=estimator(image)
                    )
                )

    snapshot = SnapshotSet(
        path=snapshot_dir,
        date_token=_date_token(snapshot_dir, prefix),
        volume_archives=tuple(volumes),
        app_data_archive=app_data,
        image_files=tuple(images),
        compose_archive=compose_archive,
        compose_estimated_bytes=compose_bytes,
    )
    if not snapshot.has_content:
        raise NoUsableContentError(snapshot_dir)
    log.info(
        f"Backup {snapshot.name}: {len(volumes)} volume(s), {len(images)} image(s), "
        f"portainer_data {'yes' if app_data else 'no'}, "
        f"compose bundle {'yes' if compose_archive else 'no'}"
    )
    return snapshot
