"""Tracking of containers stopped for the restore."""

from __future__ import annotations

from docker_restore.domain import WorkloadSnapshot
from docker_restore.engine.docker import ContainerEngine
from docker_restore.logging import get_logger

from .gate import ExecutionGate

log = get_logger(source="workloads", tags=["restore", "containers"])


class WorkloadTracker:
    """Remember which containers were running so only those are resumed."""

    def __init__(self, engine: ContainerEngine, gate: ExecutionGate):
        self.engine = engine
        self.gate = gate
        self.captured: WorkloadSnapshot | None = None

    def capture_running(self) -> WorkloadSnapshot:
        """Record running containers; read-only, so it runs in dry-run too."""
        if self.captured is not None:
            raise RuntimeError("Running containers were already captured for this run")
        self.captured = WorkloadSnapshot.from_ids(self.engine.list_running())
        log.info(f"Running containers before restore: {len(self.captured)}")
        return self.captured

    def stop(self, snapshot: WorkloadSnapshot) -> None:
        if snapshot.is_empty:
            log.info("No running containers to stop.")
            return
        ids = list(snapshot.container_ids)
        self.gate.perform(
            f"docker stop {' '.join(ids)}",
            lambda: self.engine.stop_containers(ids),
        )

    def resume(self, snapshot: WorkloadSnapshot) -> None:
        if snapshot.is_empty:
            log.info("No containers were running before the restore; nothing to resume.")
            return
        ids = list(snapshot.container_ids)
        self.gate.perform(
            f"docker start {' '.join(ids)}",
            lambda: self.engine.start_containers(ids),
        )
        log.info("Resumed containers that were running before the restore.")
