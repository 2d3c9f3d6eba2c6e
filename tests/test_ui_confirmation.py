"""Tests for the interactive restore confirmation."""

import io

import pytest

from docker_restore.ui.confirmation import (
    ask_confirmation,
    is_affirmative,
    normalize_answer,
    read_answer,
)


@pytest.fixture
def ready_select(mocker):
    """Patch select so the input stream is always ready."""
    return mocker.patch(
        "docker_restore.ui.confirmation.select.select",
        side_effect=lambda rlist, _w, _x, _t: (rlist, [], []),
    )


@pytest.fixture
def silent_select(mocker):
    """Patch select so the wait always times out."""
    return mocker.patch(
        "docker_restore.ui.confirmation.select.select", return_value=([], [], [])
    )


class TestNormalizeAnswer:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("yes", "yes"),
            ("  YES \n", "yes"),
            ("Sí", "si"),
            ("SÍ", "si"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_answer(raw) == expected

    def test_is_affirmative(self):
        assert is_affirmative("Yes", "yes")
        assert is_affirmative("sí", "si")
        assert not is_affirmative("no", "yes")
        assert not is_affirmative("y", "yes")
        assert not is_affirmative(None, "yes")


class TestReadAnswer:
    def test_returns_line_without_newline(self, ready_select):
        assert read_answer(30, io.StringIO("yes\n")) == "yes"

    def test_timeout(self, silent_select):
        assert read_answer(30, io.StringIO("yes\n")) is None
        assert silent_select.call_args.args[3] == 30

    def test_end_of_input_raises(self, ready_select):
        with pytest.raises(EOFError):
            read_answer(30, io.StringIO(""))

    def test_empty_line_is_an_answer(self, ready_select):
        assert read_answer(30, io.StringIO("\n")) == ""


class TestAskConfirmation:
    def test_prompt_mentions_token_and_timeout(self, ready_select):
        output = io.StringIO()

        answer = ask_confirmation("yes", 30, io.StringIO("yes\n"), output)

        assert answer == "yes"
        assert "[yes/no]" in output.getvalue()
        assert "(30s)" in output.getvalue()

    def test_timeout_returns_none(self, silent_select):
        output = io.StringIO()

        assert ask_confirmation("yes", 5, io.StringIO(""), output) is None
        assert output.getvalue().endswith("\n")

    def test_end_of_input_propagates(self, ready_select):
        output = io.StringIO()

        with pytest.raises(EOFError):
            ask_confirmation("yes", 5, io.StringIO(""), output)
        assert output.getvalue().endswith("\n")
