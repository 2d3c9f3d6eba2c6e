"""Domain model for restore operations.

Type-safe objects passed between the locator, the space checks and the
restore pipeline instead of loose paths and dicts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional


# ==============================================================================
# Snapshot Domain
# ==============================================================================


@dataclass(frozen=True)
class VolumeArchiveEntry:
    """A named volume archive inside a backup set."""

    volume_name: str  # e.g., "nextcloud_db"
    archive_path: Path  # e.g., .../nextcloud_db_2025-09-20.tar.gz
    estimated_bytes: int = 0  # Restored (uncompressed) size, best effort


@dataclass(frozen=True)
class ImageArchiveEntry:
    """An exported image (``docker save`` output) inside a backup set."""

    name: str  # File name, e.g. "nginx_latest.tar"
    path: Path
    size_bytes: int = 0


@dataclass(frozen=True)
class SnapshotSet:
    """One full backup set on disk.

    Holds every restorable artifact found under the snapshot directory.
    The portainer_data archive and the compose bundle are kept apart from the
    generic volume archives.
    """

    path: Path
    date_token: str
    volume_archives: tuple[VolumeArchiveEntry, ...] = ()
    app_data_archive: Optional[VolumeArchiveEntry] = None
    image_files: tuple[ImageArchiveEntry, ...] = ()
    compose_archive: Optional[Path] = None
    compose_estimated_bytes: int = 0

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def has_content(self) -> bool:
        """True when at least one kind of artifact is present."""
        return bool(
            self.volume_archives
            or self.app_data_archive is not None
            or self.image_files
            or self.compose_archive is not None
        )


# ==============================================================================
# Space Domain
# ==============================================================================


DEFAULT_MARGIN_PERCENT = 20


@dataclass(frozen=True)
class SpaceRequirement:
    """Space needed at a target location, in kilobytes."""

    target_path: Path
    required_kb: int
    margin_percent: int = DEFAULT_MARGIN_PERCENT

    @property
    def margin_kb(self) -> int:
        # Integer ceiling; never round the requirement down.
        return (self.required_kb * self.margin_percent + 99) // 100

    @property
    def effective_required_kb(self) -> int:
        return self.required_kb + self.margin_kb


def bytes_to_kb(size_bytes: int) -> int:
    """Convert bytes to kilobytes, rounding up."""
    if size_bytes <= 0:
        return 0
    return math.ceil(size_bytes / 1024)


# ==============================================================================
# Workload Domain
# ==============================================================================


@dataclass(frozen=True)
class WorkloadSnapshot:
    """Container ids observed running right before the stop step."""

    container_ids: tuple[str, ...] = ()

    @classmethod
    def from_ids(cls, ids: Iterable[str]) -> WorkloadSnapshot:
        return cls(tuple(item for item in ids if item))

    @property
    def is_empty(self) -> bool:
        return not self.container_ids

    def __len__(self) -> int:
        return len(self.container_ids)


@dataclass(frozen=True)
class Mount:
    """A bind or volume mount for an ephemeral helper container."""

    source: str  # Volume name or host directory
    target: str  # Path inside the container
    read_only: bool = False

    def as_cli_arg(self) -> str:
        suffix = ":ro" if self.read_only else ""
        return f"{self.source}:{self.target}{suffix}"


class ComposeImpl(Enum):
    """Which compose front end is installed."""

    PLUGIN = "plugin"  # docker compose
    LEGACY = "legacy"  # docker-compose
    UNAVAILABLE = "unavailable"


# ==============================================================================
# Restore Report Domain
# ==============================================================================


class Stage(Enum):
    """Restore pipeline stages, in execution order."""

    SELECT = "select"
    PREFLIGHT = "preflight"
    STOP = "stop"
    VOLUMES = "volumes"
    IMAGES = "images"
    APP_DATA = "app_data"
    COMPOSE_BUNDLE = "compose_bundle"
    RESUME = "resume"
    COMPOSE_UP = "compose_up"


class StageOutcome(Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StageResult:
    stage: Stage
    outcome: StageOutcome
    detail: str = ""


@dataclass
class RestoreReport:
    """Per-stage outcomes of one restore run."""

    dry_run: bool
    snapshot: Optional[SnapshotSet] = None
    results: list[StageResult] = field(default_factory=list)

    def record(self, stage: Stage, outcome: StageOutcome, detail: str = "") -> None:
        self.results.append(StageResult(stage=stage, outcome=outcome, detail=detail))

    def outcome_for(self, stage: Stage) -> Optional[StageOutcome]:
        for result in self.results:
            if result.stage == stage:
                return result.outcome
        return None

    @property
    def succeeded(self) -> bool:
        return all(result.outcome != StageOutcome.FAILED for result in self.results)
