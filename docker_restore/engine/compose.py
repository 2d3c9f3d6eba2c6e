"""Compose front-end detection and ``up -d`` launches.

Either the ``docker compose`` plugin or the standalone ``docker-compose``
binary may be installed; both take the same arguments.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, Optional

from docker_restore.domain import ComposeImpl
from docker_restore.logging import LoggerFactory

from .command_runners import command_succeeds, run_checked_command

log = LoggerFactory.for_compose()

_BASE_COMMANDS = {
    ComposeImpl.PLUGIN: ["docker", "compose"],
    ComposeImpl.LEGACY: ["docker-compose"],
}


def detect_compose_impl(
    check: Callable[[list[str]], bool] = command_succeeds,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> ComposeImpl:
    """Find which compose front end is available, preferring the plugin."""
    if check(["docker", "compose", "version"]):
        return ComposeImpl.PLUGIN
    if which("docker-compose"):
        return ComposeImpl.LEGACY
    return ComposeImpl.UNAVAILABLE


class ComposeLauncher:
    """Bring up compose stacks with whichever front end was detected."""

    def __init__(
        self,
        impl: ComposeImpl,
        runner: Callable[..., str] = run_checked_command,
    ):
        self.impl = impl
        self.runner = runner

    @classmethod
    def detect(cls, runner: Callable[..., str] = run_checked_command) -> ComposeLauncher:
        impl = detect_compose_impl()
        log.debug(f"Compose front end: {impl.value}")
        return cls(impl, runner=runner)

    @property
    def available(self) -> bool:
        return self.impl != ComposeImpl.UNAVAILABLE

    def build_command(self, compose_file: Path) -> list[str]:
        return [*_BASE_COMMANDS[self.impl], "-f", str(compose_file), "up", "-d"]

    def launch(self, directory: Path, compose_file: Path) -> None:
        """Run ``up -d`` for compose_file with directory as working dir.

        Raises:
            CommandFailedError: If the compose command fails
        """
        if not self.available:
            log.warning(
                "WARNING: neither 'docker compose' nor 'docker-compose' is installed; "
                f"skipping {compose_file}"
            )
            return
        self.runner(self.build_command(compose_file), cwd=directory)
