"""Prompt capability used to fill in configure options the caller did not supply."""

from __future__ import annotations

import sys
import threading
from typing import Optional, Protocol, TextIO

from errors import ConfigurationError


class Prompt(Protocol):
    """Ask ``question`` and return the answer, or ``default`` when none is given."""

    def ask(self, question: str, default: str) -> str:
        ...


class InteractivePrompt:
    """Prompt on a terminal (or any pair of text streams).

    Questions asked from several build threads are serialised, so each
    question and its answer stay together on the terminal.
    """

    def __init__(self, in_stream: Optional[TextIO] = None, out_stream: Optional[TextIO] = None):
        self.in_stream = in_stream if in_stream is not None else sys.stdin
        self.out_stream = out_stream if out_stream is not None else sys.stdout
        self._lock = threading.Lock()

    def ask(self, question: str, default: str) -> str:
        """Write ``"<question> [<default>]: "`` and read one line.

        Raises:
            ConfigurationError: If the input stream is closed before an answer is read.
        """
        with self._lock:
            self.out_stream.write(f"{question} [{default}]: ")
            self.out_stream.flush()
            line = self.in_stream.readline()

        if not line:
            raise ConfigurationError(f"no answer given to {question!r}: end of input")
        answer = line.rstrip("\r\n")
        return answer if answer else default


class NonInteractivePrompt:
    """Always answers with the default value."""

    def ask(self, question: str, default: str) -> str:
        return default
