"""Test double for ``CommandExecutor``.

``RecordingExecutor`` never launches a process. It records every invocation
and answers with fabricated output, so code built on the executor can be
exercised without the real programs being installed::

    executor = RecordingExecutor()
    executor.fake_on(["php", "-r", "echo json_encode(PHP_VERSION);"], stdout='"8.2.1"')
    ...
    executor.assert_executed(["make", "install"])
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from cmdexec.executor import CommandExecutor, CommandResult, ExecConfig


@dataclass
class Execution:
    """One recorded invocation."""

    program: str
    args: List[str]
    cwd: Optional[str] = None
    env: Optional[Dict[str, str]] = None

    @property
    def argv(self) -> List[str]:
        return [self.program] + self.args


@dataclass
class FakeResponse:
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0


@dataclass
class _Recorder:
    executions: List[Execution] = field(default_factory=list)
    fakes: List[Tuple[List[str], FakeResponse]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class RecordingExecutor(CommandExecutor):
    """Executor that records invocations and substitutes canned results.

    Executors derived through ``with_*``/``compose`` share the same recording
    and the same fakes.
    """

    def __init__(self, config: Optional[ExecConfig] = None):
        super().__init__(config)
        self._recorder = _Recorder()

    def fake_on(
        self,
        argv: Sequence[str],
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
    ) -> "RecordingExecutor":
        """Answer invocations whose argv equals ``argv`` exactly with the given output."""
        with self._recorder.lock:
            self._recorder.fakes.append((list(argv), FakeResponse(stdout, stderr, exit_code)))
        return self

    @property
    def executions(self) -> List[Execution]:
        with self._recorder.lock:
            return list(self._recorder.executions)

    def executed_argv(self) -> List[List[str]]:
        return [execution.argv for execution in self.executions]

    def executed_commands(self) -> List[str]:
        """Recorded invocations rendered as space-joined command lines."""
        return [" ".join(argv) for argv in self.executed_argv()]

    def assert_executed(self, argv: Sequence[str]) -> None:
        expected = list(argv)
        if expected not in self.executed_argv():
            raise AssertionError(
                f"no command execution recorded with args {expected}; got {self.executed_argv()}"
            )

    def assert_not_executed(self, program: str) -> None:
        ran = [e.argv for e in self.executions if e.program == program]
        if ran:
            raise AssertionError(f"{program} was executed: {ran}")

    def _spawn(self, argv: Sequence[str], config: ExecConfig, capture: bool) -> CommandResult:
        argv = list(argv)
        with self._recorder.lock:
            self._recorder.executions.append(
                Execution(program=argv[0], args=argv[1:], cwd=config.cwd, env=config.environment())
            )
            response = FakeResponse()
            # Latest registration wins when several fakes match the same argv.
            for expected, fake in reversed(self._recorder.fakes):
                if expected == argv:
                    response = fake
                    break

        if not capture and config.stdout is not None and response.stdout:
            config.stdout.write(response.stdout)
        if config.stderr is not None and response.stderr:
            config.stderr.write(response.stderr)
        return CommandResult(argv, response.exit_code, response.stdout, response.stderr)
