"""Domain objects for restore operations."""

from .models import (
    ComposeImpl,
    ImageArchiveEntry,
    Mount,
    RestoreReport,
    SnapshotSet,
    SpaceRequirement,
    Stage,
    StageOutcome,
    StageResult,
    VolumeArchiveEntry,
    WorkloadSnapshot,
    bytes_to_kb,
)

__all__ = [
    "ComposeImpl",
    "ImageArchiveEntry",
    "Mount",
    "RestoreReport",
    "SnapshotSet",
    "SpaceRequirement",
    "Stage",
    "StageOutcome",
    "StageResult",
    "VolumeArchiveEntry",
    "WorkloadSnapshot",
    "bytes_to_kb",
]
