"""Container engine operations used by the restore.

The restore only needs a handful of engine primitives; they are collected in
``ContainerEngine`` so the pipeline can run against a fake in tests.
``DockerCLI`` implements them with the ``docker`` command.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, Sequence

from docker_restore.domain import Mount
from docker_restore.logging import LoggerFactory
from docker_restore.storage.exceptions import CommandFailedError

from .command_runners import run_checked_command

log = LoggerFactory.for_engine()

DEFAULT_DATA_ROOT = Path("/var/lib/docker")


class ContainerEngine(ABC):
    """Narrow engine interface consumed by the restore pipeline."""

    @abstractmethod
    def data_root(self) -> Path:
        """Directory where the engine stores volumes and image layers."""

    @abstractmethod
    def list_running(self) -> list[str]:
        """Ids of running containers."""

    @abstractmethod
    def create_volume(self, name: str) -> None:
        """Create a named volume; an existing volume is not an error."""

    @abstractmethod
    def load_image(self, path: Path) -> None:
        """Load an exported image archive into the image store."""

    @abstractmethod
    def stop_containers(self, ids: Sequence[str]) -> None:
        ...

    @abstractmethod
    def start_containers(self, ids: Sequence[str]) -> None:
        ...

    @abstractmethod
    def run_ephemeral(
        self, image: str, mounts: Iterable[Mount], command: Sequence[str]
    ) -> None:
        """Run a throwaway container (removed on exit) and wait for it."""


class DockerCLI(ContainerEngine):
    def __init__(
        self,
        runner: Callable[..., str] = run_checked_command,
        docker: str = "docker",
    ):
        self.runner = runner
        self.docker = docker

    def _run(self, *args: str) -> str:
        return self.runner([self.docker, *args])

    def data_root(self) -> Path:
        try:
            output = self._run("info", "-f", "{{.DockerRootDir}}").strip()
        except (CommandFailedError, OSError) as exc:
            log.debug(f"docker info failed ({exc}); using {DEFAULT_DATA_ROOT}")
            return DEFAULT_DATA_ROOT
        return Path(output) if output else DEFAULT_DATA_ROOT

    def list_running(self) -> list[str]:
        output = self._run("ps", "-q")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def create_volume(self, name: str) -> None:
        self._run("volume", "create", name)

    def load_image(self, path: Path) -> None:
        output = self._run("load", "-i", str(path))
        if output.strip():
            log.debug(output.strip())

    def stop_containers(self, ids: Sequence[str]) -> None:
        if ids:
            self._run("stop", *ids)

    def start_containers(self, ids: Sequence[str]) -> None:
        if ids:
            self._run("start", *ids)

    def run_ephemeral(
        self, image: str, mounts: Iterable[Mount], command: Sequence[str]
    ) -> None:
        args = ["run", "--rm"]
        for mount in mounts:
            args.extend(["-v", mount.as_cli_arg()])
        args.append(image)
        args.extend(command)
        self._run(*args)
