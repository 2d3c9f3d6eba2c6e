"""Interactive confirmation before a destructive restore."""

from __future__ import annotations

import select
import sys
import unicodedata
from typing import Optional, TextIO

PROMPT = (
    "You are about to restore a FULL Docker backup (no differentials). "
    "Are you sure? [{token}/no] ({timeout}s): "
)


def normalize_answer(text: str) -> str:
    """Lowercase, trim and strip diacritics ("  Sí " -> "si")."""
    decomposed = unicodedata.normalize("NFKD", text.strip())
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.casefold()


def is_affirmative(answer: Optional[str], token: str) -> bool:
    if answer is None:
        return False
    return normalize_answer(answer) == normalize_answer(token)


def read_answer(timeout: float, stream: TextIO = sys.stdin) -> Optional[str]:
    """Wait up to timeout seconds for one line of input.

    Returns None on timeout.

    Raises:
        EOFError: If the input is closed before a line arrives
    """
    ready, _, _ = select.select([stream], [], [], timeout)
    if not ready:
        return None
    line = stream.readline()
    if not line:
        raise EOFError("no input available")
    return line.rstrip("\n")


def ask_confirmation(
    token: str,
    timeout: float,
    stream: TextIO = sys.stdin,
    output: TextIO = sys.stdout,
) -> Optional[str]:
    """Print the prompt and return the raw answer, or None on timeout.

    Raises:
        EOFError: If the input is closed before an answer arrives
    """
    output.write(PROMPT.format(token=token, timeout=int(timeout)))
    output.flush()
    try:
        answer = read_answer(timeout, stream)
    except EOFError:
        output.write("\n")
        output.flush()
        raise
    if answer is None:
        output.write("\n")
        output.flush()
    return answer
