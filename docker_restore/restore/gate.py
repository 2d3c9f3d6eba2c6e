"""Dry-run gate for state-changing actions.

Every mutation in a restore goes through ``ExecutionGate.perform`` so a dry
run walks the exact same code path as a live run and only stops at the gate.
"""

from __future__ import annotations

from typing import Callable

from docker_restore.logging import get_logger
from docker_restore.storage.exceptions import CommandFailedError, MutationError

log = get_logger(source="gate", tags=["restore", "gate"])


class ExecutionGate:
    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        # Descriptions of every gated action, in order, in both modes.
        self.history: list[str] = []

    def perform(self, description: str, action: Callable[[], object]) -> None:
        """Run action, or only log it in dry-run mode.

        Raises:
            MutationError: If the action fails in live mode
        """
        self.history.append(description)
        if self.dry_run:
            log.info(f"(dry-run) {description}")
            return
        log.info(description)
        try:
            action()
        except (CommandFailedError, OSError) as exc:
            raise MutationError(description, str(exc)) from exc
