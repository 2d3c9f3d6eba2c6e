"""Tests for the docker command-line engine adapter."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docker_restore.domain import Mount
from docker_restore.engine.docker import DEFAULT_DATA_ROOT, DockerCLI
from docker_restore.storage.exceptions import CommandFailedError


@pytest.fixture
def runner():
    return MagicMock(return_value="")


@pytest.fixture
def docker(runner):
    return DockerCLI(runner=runner)


class TestDataRoot:
    def test_reported_root(self, docker, runner):
        runner.return_value = "/srv/docker\n"

        assert docker.data_root() == Path("/srv/docker")
        runner.assert_called_once_with(["docker", "info", "-f", "{{.DockerRootDir}}"])

    def test_empty_output_uses_default(self, docker, runner):
        runner.return_value = "   \n"
        assert docker.data_root() == DEFAULT_DATA_ROOT

    def test_failure_uses_default(self, docker, runner):
        runner.side_effect = CommandFailedError(["docker", "info"], 1, "Cannot connect")
        assert docker.data_root() == DEFAULT_DATA_ROOT


class TestContainers:
    def test_list_running(self, docker, runner):
        runner.return_value = "abc123\ndef456\n\n"

        assert docker.list_running() == ["abc123", "def456"]
        runner.assert_called_once_with(["docker", "ps", "-q"])

    def test_stop_and_start(self, docker, runner):
        docker.stop_containers(["abc123", "def456"])
        docker.start_containers(["abc123"])

        assert runner.call_args_list[0].args[0] == ["docker", "stop", "abc123", "def456"]
        assert runner.call_args_list[1].args[0] == ["docker", "start", "abc123"]

    def test_empty_id_lists_run_nothing(self, docker, runner):
        docker.stop_containers([])
        docker.start_containers([])

        runner.assert_not_called()


class TestVolumesAndImages:
    def test_create_volume(self, docker, runner):
        docker.create_volume("nextcloud_db")
        runner.assert_called_once_with(["docker", "volume", "create", "nextcloud_db"])

    def test_load_image(self, docker, runner):
        runner.return_value = "Loaded image: nginx:latest\n"

        docker.load_image(Path("/var/backups/x/images/nginx_latest.tar"))

        runner.assert_called_once_with(
            ["docker", "load", "-i", "/var/backups/x/images/nginx_latest.tar"]
        )

    def test_errors_propagate(self, docker, runner):
        runner.side_effect = CommandFailedError(["docker", "load"], 1, "invalid tar header")

        with pytest.raises(CommandFailedError):
            docker.load_image(Path("broken.tar"))


class TestRunEphemeral:
    def test_builds_run_command(self, docker, runner):
        mounts = [
            Mount("media", "/data"),
            Mount("/var/backups/set", "/backup", read_only=True),
        ]

        docker.run_ephemeral("alpine:3.20", mounts, ["sh", "-c", "tar -xzf x -C /data"])

        runner.assert_called_once_with(
            [
                "docker",
                "run",
                "--rm",
                "-v",
                "media:/data",
                "-v",
                "/var/backups/set:/backup:ro",
                "alpine:3.20",
                "sh",
                "-c",
                "tar -xzf x -C /data",
            ]
        )

    def test_custom_docker_binary(self, runner):
        DockerCLI(runner=runner, docker="/usr/local/bin/docker").create_volume("db")
        runner.assert_called_once_with(["/usr/local/bin/docker", "volume", "create", "db"])
