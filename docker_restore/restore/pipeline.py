"""Full-backup restore sequence.

Stages run strictly in order and each one either finishes or aborts the
whole run:

    select -> preflight -> stop -> volumes -> images -> portainer_data
           -> compose bundle -> resume -> compose up

Only ``compose up`` isolates failures per compose file; the stacks are
independent of each other, unlike volumes and images.

An interrupted run is not rolled back. Every step is safe to repeat
(volume creation tolerates existing volumes, extraction overwrites), so the
recovery is to inspect the host and run the restore again from the top.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Callable, Optional

from docker_restore.config.settings import COMPOSE_FILE_NAMES, RestoreConfig
from docker_restore.domain import (
    Mount,
    RestoreReport,
    SnapshotSet,
    Stage,
    StageOutcome,
    VolumeArchiveEntry,
    WorkloadSnapshot,
    bytes_to_kb,
)
from docker_restore.engine.compose import ComposeLauncher
from docker_restore.engine.docker import ContainerEngine
from docker_restore.logging import LoggerFactory, stage_context
from docker_restore.storage.archive import extract_archive
from docker_restore.storage.exceptions import MutationError, RestoreError
from docker_restore.storage.snapshot import load_snapshot, locate_snapshot
from docker_restore.storage.space import SpaceGuard, estimate_restored_size

from .gate import ExecutionGate
from .workloads import WorkloadTracker

log = LoggerFactory.for_pipeline()


def find_compose_files(root: Path) -> list[Path]:
    """Find compose definition files under root, recursively."""
    if not root.is_dir():
        return []
    found = [
        path
        for path in root.rglob("*")
        if path.name in COMPOSE_FILE_NAMES and path.is_file()
    ]
    return sorted(found)


def nearest_existing_dir(path: Path) -> Path:
    """Closest existing ancestor of path (path itself if it exists)."""
    candidate = Path(path)
    while not candidate.exists() and candidate != candidate.parent:
        candidate = candidate.parent
    return candidate


def volume_restore_command(archive_name: str) -> list[str]:
    """Shell command for the helper container: verify, then extract."""
    inside = shlex.quote(f"/backup/{archive_name}")
    return [
        "sh",
        "-c",
        f"tar -tzf {inside} >/dev/null && tar -xzf {inside} -C /data",
    ]


class RestorePipeline:
    def __init__(
        self,
        config: RestoreConfig,
        engine: ContainerEngine,
        *,
        gate: Optional[ExecutionGate] = None,
        guard: Optional[SpaceGuard] = None,
        launcher: Optional[ComposeLauncher] = None,
        estimator: Callable[[Path], int] = estimate_restored_size,
        extractor: Callable[[Path, Path], None] = extract_archive,
    ):
        self.config = config
        self.engine = engine
        self.gate = gate or ExecutionGate(dry_run=config.dry_run)
        self.guard = guard or SpaceGuard()
        self.launcher = launcher if launcher is not None else ComposeLauncher.detect()
        self.estimator = estimator
        self.extractor = extractor
        self.tracker = WorkloadTracker(engine, self.gate)
        self.data_root: Optional[Path] = None

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def run(self) -> RestoreReport:
        """Run every stage in order.

        Raises:
            RestoreError: On the first fatal stage failure
        """
        report = RestoreReport(dry_run=self.config.dry_run)
        if self.config.dry_run:
            log.info("Dry run: no volume, image, container or file will be modified.")

        snapshot: SnapshotSet = self._run_stage(
            report, Stage.SELECT, lambda: self._select(report)
        )
        self._run_stage(report, Stage.PREFLIGHT, lambda: self._preflight(snapshot))

        self._run_stage(report, Stage.STOP, self._stop)
        self._run_stage(report, Stage.VOLUMES, lambda: self._restore_volumes(snapshot))
        self._run_stage(report, Stage.IMAGES, lambda: self._restore_images(snapshot))
        self._run_stage(report, Stage.APP_DATA, lambda: self._restore_app_data(snapshot))
        self._run_stage(
            report, Stage.COMPOSE_BUNDLE, lambda: self._restore_compose_bundle(snapshot)
        )
        self._run_stage(report, Stage.RESUME, self._resume)
        self._run_stage(report, Stage.COMPOSE_UP, self._compose_up)

        if report.succeeded:
            log.info("Restore completed.")
        else:
            log.warning("Restore completed with errors; see the log above.")
        return report

    def _run_stage(self, report: RestoreReport, stage: Stage, func):
        with stage_context(stage.value):
            try:
                outcome, detail, *value = func()
            except RestoreError as exc:
                report.record(stage, StageOutcome.FAILED, str(exc))
                raise
        report.record(stage, outcome, detail)
        return value[0] if value else None

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _select(self, report: RestoreReport):
        path = locate_snapshot(
            self.config.backup_dir,
            self.config.snapshot_prefix,
            explicit=self.config.snapshot_path,
        )
        snapshot = load_snapshot(path, self.config.snapshot_prefix, self.estimator)
        report.snapshot = snapshot
        return StageOutcome.SUCCEEDED, str(snapshot.path), snapshot

    def _preflight(self, snapshot: SnapshotSet):
        log.info("Preflight: estimating required space...")
        self.data_root = self.engine.data_root()

        docker_kb = sum(bytes_to_kb(entry.estimated_bytes) for entry in snapshot.volume_archives)
        docker_kb += sum(bytes_to_kb(image.size_bytes) for image in snapshot.image_files)
        if snapshot.app_data_archive is not None:
            docker_kb += bytes_to_kb(snapshot.app_data_archive.estimated_bytes)
        compose_kb = bytes_to_kb(snapshot.compose_estimated_bytes)
        margin = self.guard.margin_percent

        log.info("Approximate space required:")
        log.info(
            f"  - Docker root ({self.data_root}): ~{docker_kb} KB "
            f"(+{margin}% margin in the effective check)"
        )
        if compose_kb > 0:
            log.info(
                f"  - {self.config.compose_restore_dir}: ~{compose_kb} KB "
                f"(+{margin}% margin in the effective check)"
            )

        self.guard.check_or_abort(self.data_root, docker_kb, "restore into the Docker root")
        if compose_kb > 0:
            self.guard.check_or_abort(
                nearest_existing_dir(self.config.compose_restore_dir),
                compose_kb,
                f"compose extraction to {self.config.compose_restore_dir}",
            )
        return StageOutcome.SUCCEEDED, f"docker ~{docker_kb}KB, compose ~{compose_kb}KB"

    def _stop(self):
        if not self.config.stop_containers:
            return StageOutcome.SKIPPED, "not requested"
        snapshot = self.tracker.capture_running()
        self.tracker.stop(snapshot)
        if snapshot.is_empty:
            return StageOutcome.SKIPPED, "no running containers"
        return StageOutcome.SUCCEEDED, f"{len(snapshot)} container(s) stopped"

    def _restore_volumes(self, snapshot: SnapshotSet):
        if not snapshot.volume_archives:
            log.info("No volume archives in the full backup.")
            return StageOutcome.SKIPPED, "no volume archives"
        log.info("Restoring volumes from the full backup...")
        for entry in snapshot.volume_archives:
            self._restore_volume(entry)
        return StageOutcome.SUCCEEDED, f"{len(snapshot.volume_archives)} volume(s)"

    def _restore_images(self, snapshot: SnapshotSet):
        if not snapshot.image_files:
            return StageOutcome.SKIPPED, "no image exports"
        log.info("Restoring images...")
        data_root = self._require_data_root()
        for image in snapshot.image_files:
            self.guard.check_or_abort(
                data_root, bytes_to_kb(image.size_bytes), f"loading image {image.name}"
            )
            self.gate.perform(
                f"docker load -i {image.path}",
                lambda image=image: self.engine.load_image(image.path),
            )
            log.info(f"Image loaded: {image.name}")
        return StageOutcome.SUCCEEDED, f"{len(snapshot.image_files)} image(s)"

    def _restore_app_data(self, snapshot: SnapshotSet):
        entry = snapshot.app_data_archive
        if entry is None:
            log.info("No portainer_data backup found in the full backup.")
            return StageOutcome.SKIPPED, "no portainer_data archive"
        self._restore_volume(entry)
        return StageOutcome.SUCCEEDED, entry.volume_name

    def _restore_compose_bundle(self, snapshot: SnapshotSet):
        archive = snapshot.compose_archive
        if archive is None:
            log.info("No Docker Compose bundle found in the full backup.")
            return StageOutcome.SKIPPED, "no compose bundle"
        target = self.config.compose_restore_dir
        self.gate.perform(
            f"mkdir -p {target}",
            lambda: target.mkdir(parents=True, exist_ok=True),
        )
        self.guard.check_or_abort(
            nearest_existing_dir(target),
            bytes_to_kb(snapshot.compose_estimated_bytes),
            f"extracting Docker Compose files to {target}",
        )
        self.gate.perform(
            f"tar -xzf {archive} -C {target}",
            lambda: self.extractor(archive, target),
        )
        log.info(f"Docker Compose files restored to {target}")
        return StageOutcome.SUCCEEDED, str(target)

    def _resume(self):
        if not (self.config.resume_running and self.config.stop_containers):
            return StageOutcome.SKIPPED, "not requested"
        snapshot = self.tracker.captured
        if snapshot is None:
            snapshot = WorkloadSnapshot()
        self.tracker.resume(snapshot)
        if snapshot.is_empty:
            return StageOutcome.SKIPPED, "nothing was running"
        return StageOutcome.SUCCEEDED, f"{len(snapshot)} container(s) started"

    def _compose_up(self):
        if not self.config.compose_up:
            return StageOutcome.SKIPPED, "not requested"
        root = self.config.compose_restore_dir
        files = find_compose_files(root)
        if not files:
            log.info(f"No compose files found under {root}.")
            return StageOutcome.SKIPPED, "no compose files"
        failures: list[str] = []
        for compose_file in files:
            directory = compose_file.parent
            try:
                self.gate.perform(
                    f"docker compose up -d in '{directory}' (file {compose_file.name})",
                    lambda compose_file=compose_file: self.launcher.launch(
                        compose_file.parent, compose_file
                    ),
                )
            except MutationError as exc:
                log.error(f"ERROR: {exc}")
                failures.append(str(compose_file))
        if failures:
            return (
                StageOutcome.FAILED,
                f"{len(failures)} of {len(files)} compose file(s) failed: "
                + ", ".join(failures),
            )
        return StageOutcome.SUCCEEDED, f"{len(files)} compose file(s)"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_data_root(self) -> Path:
        if self.data_root is None:
            self.data_root = self.engine.data_root()
        return self.data_root

    def _restore_volume(self, entry: VolumeArchiveEntry) -> None:
        name = entry.volume_name
        archive = entry.archive_path
        self.guard.check_or_abort(
            self._require_data_root(),
            bytes_to_kb(entry.estimated_bytes),
            f"restoring volume '{name}' from {archive.name}",
        )
        self.gate.perform(
            f"docker volume create {name}",
            lambda: self.engine.create_volume(name),
        )
        mounts = [
            Mount(source=name, target="/data"),
            Mount(source=str(archive.parent), target="/backup", read_only=True),
        ]
        self.gate.perform(
            f"restore {archive} into volume {name}",
            lambda: self.engine.run_ephemeral(
                self.config.helper_image,
                mounts,
                volume_restore_command(archive.name),
            ),
        )
        log.info(f"Volume restored: {name}")
