"""
Pytest configuration and shared fixtures for docker-restore tests.

This module provides common fixtures and utilities used across all test modules.
"""

import io
import tarfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from loguru import logger

from docker_restore.config.settings import DEFAULT_SNAPSHOT_PREFIX as PREFIX, RestoreConfig
from docker_restore.domain import ComposeImpl
from docker_restore.engine.compose import ComposeLauncher
from docker_restore.engine.docker import ContainerEngine
from docker_restore.storage.exceptions import CommandFailedError


# ==============================================================================
# Archive Helpers
# ==============================================================================


def make_targz(path: Path, files: Dict[str, bytes]) -> Path:
    """Write a gzip-compressed tarball containing files."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as archive:
        for name, data in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return path


def set_gzip_isize(path: Path, value: int) -> None:
    """Overwrite the uncompressed-size field in a gzip trailer."""
    raw = bytearray(path.read_bytes())
    raw[-4:] = value.to_bytes(4, "little")
    path.write_bytes(bytes(raw))


# ==============================================================================
# Snapshot Fixtures
# ==============================================================================


@pytest.fixture
def targz():
    """Fixture providing the make_targz helper."""
    return make_targz


@pytest.fixture
def set_isize():
    """Fixture providing the set_gzip_isize helper."""
    return set_gzip_isize


@pytest.fixture
def backup_root(tmp_path) -> Path:
    """Fixture providing an empty backup root directory."""
    root = tmp_path / "backups"
    root.mkdir()
    return root


@pytest.fixture
def full_snapshot(backup_root) -> Path:
    """
    Fixture providing a complete backup set.

    Contains two volume archives, one exported image, a portainer_data
    archive and a compose bundle with one stack.
    """
    snapshot = backup_root / f"{PREFIX}2025-09-20"
    snapshot.mkdir()
    make_targz(snapshot / "nextcloud_db_2025-09-20.tar.gz", {"db/data.bin": b"x" * 4096})
    make_targz(snapshot / "media_2025-09-20.tar.gz", {"photo.jpg": b"y" * 2048})
    make_targz(snapshot / "portainer_data_2025-09-20.tar.gz", {"portainer.db": b"p" * 1024})
    make_targz(
        snapshot / "docker_compose_files_2025-09-20.tar.gz",
        {"nextcloud/docker-compose.yml": b"services: {}\n"},
    )
    images = snapshot / "images"
    images.mkdir()
    (images / "nginx_latest.tar").write_bytes(b"i" * 3000)
    return snapshot


# ==============================================================================
# Engine Fakes
# ==============================================================================


class FakeEngine(ContainerEngine):
    """In-memory engine recording every call.

    ``mutations`` holds only state-changing calls so dry-run tests can assert
    it stays empty.
    """

    def __init__(self, running: Optional[List[str]] = None, data_root: Path = Path("/")):
        self.running = list(running or [])
        self.root = data_root
        self.volumes: set = set()
        self.images: List[Path] = []
        self.mutations: List[tuple] = []
        self.fail_on: Dict[str, str] = {}

    def _maybe_fail(self, operation: str, *args) -> None:
        if operation in self.fail_on:
            raise CommandFailedError(["docker", operation, *map(str, args)], 1, self.fail_on[operation])

    def data_root(self) -> Path:
        return self.root

    def list_running(self) -> List[str]:
        return list(self.running)

    def create_volume(self, name: str) -> None:
        self.mutations.append(("create_volume", name))
        self._maybe_fail("create_volume", name)
        self.volumes.add(name)

    def load_image(self, path: Path) -> None:
        self.mutations.append(("load_image", path))
        self._maybe_fail("load_image", path)
        self.images.append(path)

    def stop_containers(self, ids) -> None:
        self.mutations.append(("stop", tuple(ids)))
        self._maybe_fail("stop", *ids)
        self.running = [item for item in self.running if item not in ids]

    def start_containers(self, ids) -> None:
        self.mutations.append(("start", tuple(ids)))
        self._maybe_fail("start", *ids)
        self.running.extend(item for item in ids if item not in self.running)

    def run_ephemeral(self, image, mounts, command) -> None:
        mounts = list(mounts)
        self.mutations.append(("run_ephemeral", image, tuple(mounts), tuple(command)))
        self._maybe_fail("run_ephemeral", image)


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Fixture providing a FakeEngine with two running containers."""
    return FakeEngine(running=["abc123", "def456"])


@pytest.fixture
def make_engine():
    """Fixture providing the FakeEngine class for custom setups."""
    return FakeEngine


@pytest.fixture
def fake_launcher(mocker):
    """Fixture providing a plugin-style ComposeLauncher with a mock runner."""
    return ComposeLauncher(ComposeImpl.PLUGIN, runner=mocker.MagicMock(return_value=""))


@pytest.fixture
def make_config(backup_root, tmp_path):
    """Factory fixture building a RestoreConfig rooted in tmp_path."""

    def _make(**overrides) -> RestoreConfig:
        base = RestoreConfig(
            backup_dir=backup_root,
            compose_restore_dir=tmp_path / "compose",
            log_file=tmp_path / "logs" / "restore.log",
            assume_yes=True,
        )
        return base.with_overrides(**overrides)

    return _make


# ==============================================================================
# Logging and Subprocess Fixtures
# ==============================================================================


@pytest.fixture
def log_messages() -> List[str]:
    """
    Fixture capturing loguru messages emitted during a test.

    Returns:
        List that fills with formatted messages as they are logged.
    """
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def mock_subprocess_run(mocker):
    """
    Fixture providing a mock for subprocess.run.

    Returns:
        Mock object for subprocess.run
    """
    return mocker.patch("subprocess.run")
