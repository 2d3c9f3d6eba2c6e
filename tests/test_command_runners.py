"""Tests for command execution utilities."""
import subprocess
from unittest.mock import Mock

import pytest

from docker_restore.engine.command_runners import command_succeeds, run_checked_command
from docker_restore.storage.exceptions import CommandFailedError


class TestRunCheckedCommand:
    """Tests for run_checked_command function."""

    def test_successful_command(self, mock_subprocess_run):
        """Test successful command execution."""
        mock_subprocess_run.return_value = Mock(returncode=0, stdout="output", stderr="")

        result = run_checked_command(["docker", "ps", "-q"])

        assert result == "output"
        mock_subprocess_run.assert_called_once_with(
            ["docker", "ps", "-q"],
            input=None,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=None,
        )

    def test_command_with_working_directory(self, mock_subprocess_run, tmp_path):
        """Test the working directory is passed as a string."""
        mock_subprocess_run.return_value = Mock(returncode=0, stdout="", stderr="")

        run_checked_command(["docker", "compose", "up", "-d"], cwd=tmp_path)

        assert mock_subprocess_run.call_args.kwargs["cwd"] == str(tmp_path)

    def test_command_failure_with_stderr(self, mock_subprocess_run):
        """Test command failure with stderr message."""
        mock_subprocess_run.return_value = Mock(returncode=1, stdout="", stderr="error message")

        with pytest.raises(CommandFailedError, match="Command failed.*error message") as excinfo:
            run_checked_command(["false"])
        assert excinfo.value.returncode == 1

    def test_command_failure_with_stdout(self, mock_subprocess_run):
        """Test command failure with stdout message (no stderr)."""
        mock_subprocess_run.return_value = Mock(returncode=2, stdout="stdout error", stderr="")

        with pytest.raises(CommandFailedError, match="stdout error"):
            run_checked_command(["false"])

    def test_command_failure_without_output(self, mock_subprocess_run):
        mock_subprocess_run.return_value = Mock(returncode=1, stdout="", stderr="")

        with pytest.raises(CommandFailedError, match="Command failed"):
            run_checked_command(["false"])

    def test_none_stdout_returns_empty_string(self, mock_subprocess_run):
        mock_subprocess_run.return_value = Mock(returncode=0, stdout=None, stderr=None)

        assert run_checked_command(["true"]) == ""


class TestCommandSucceeds:
    def test_zero_exit(self, mock_subprocess_run):
        mock_subprocess_run.return_value = Mock(returncode=0)
        assert command_succeeds(["docker", "compose", "version"]) is True

    def test_nonzero_exit(self, mock_subprocess_run):
        mock_subprocess_run.return_value = Mock(returncode=1)
        assert command_succeeds(["docker", "compose", "version"]) is False

    def test_missing_binary(self, mock_subprocess_run):
        mock_subprocess_run.side_effect = FileNotFoundError("docker")
        assert command_succeeds(["docker", "compose", "version"]) is False
