"""Container engine and compose front-end adapters."""

from .command_runners import command_succeeds, run_checked_command
from .compose import ComposeLauncher, detect_compose_impl
from .docker import ContainerEngine, DockerCLI

__all__ = [
    "ComposeLauncher",
    "ContainerEngine",
    "DockerCLI",
    "command_succeeds",
    "detect_compose_impl",
    "run_checked_command",
]
