"""Composable execution of external programs.

An ``ExecConfig`` is an immutable bundle of working directory, environment and
output streams. Executors are combined with ``compose``/``with_*``; settings
from the later composition are applied last and therefore win. Environment
entries accumulate in composition order, so a later entry for the same key
overrides an earlier one.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from common.cancel import CancelToken, check_cancelled
from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import CommandError

logger = logging.getLogger(__name__)

EnvEntries = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class ExecConfig:
    """Execution settings. ``None`` fields are unset and fall back to the parent process."""

    cwd: Optional[str] = None
    env: Optional[EnvEntries] = None
    stdout: Any = None
    stderr: Any = None

    def with_cwd(self, cwd: str) -> "ExecConfig":
        return replace(self, cwd=cwd)

    def with_env(self, entries: Mapping[str, str]) -> "ExecConfig":
        """Append ``entries``; they take precedence over existing ones with the same key."""
        current = self.env or ()
        return replace(self, env=current + tuple((str(k), str(v)) for k, v in entries.items()))

    def with_stdout(self, stream: Any) -> "ExecConfig":
        return replace(self, stdout=stream)

    def with_stderr(self, stream: Any) -> "ExecConfig":
        return replace(self, stderr=stream)

    def merge(self, later: "ExecConfig") -> "ExecConfig":
        """Return a config where every field set on ``later`` overrides ``self``."""
        env: Optional[EnvEntries] = self.env
        if later.env is not None:
            env = (self.env or ()) + later.env
        return ExecConfig(
            cwd=later.cwd if later.cwd is not None else self.cwd,
            env=env,
            stdout=later.stdout if later.stdout is not None else self.stdout,
            stderr=later.stderr if later.stderr is not None else self.stderr,
        )

    def environment(self) -> Optional[Dict[str, str]]:
        """Flatten env entries into a mapping, or None to inherit the parent environment."""
        if self.env is None:
            return None
        flat: Dict[str, str] = {}
        for key, value in self.env:
            flat[key] = value
        return flat


@dataclass
class CommandResult:
    """Outcome of a finished process."""

    argv: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


@dataclass
class _Streams:
    """Resolved subprocess stream arguments plus text sinks to copy captured output into."""

    stdout: Any = None
    stderr: Any = None
    sinks: Dict[str, Any] = field(default_factory=dict)


def _has_fileno(stream: Any) -> bool:
    try:
        stream.fileno()
    except (AttributeError, OSError, ValueError):
        return False
    return True


def _resolve_stream(name: str, stream: Any, capture: bool, streams: _Streams) -> Any:
    if capture:
        if stream is not None:
            streams.sinks[name] = stream
        return subprocess.PIPE
    if stream is None:
        return None
    if _has_fileno(stream):
        return stream
    streams.sinks[name] = stream
    return subprocess.PIPE


class CommandExecutor:
    """Run programs against an ``ExecConfig``.

    ``with_*`` and ``compose`` never mutate the executor; they return a copy
    whose config is ``self.config.merge(new_layer)``.
    """

    def __init__(self, config: Optional[ExecConfig] = None):
        self._config = config or ExecConfig()

    @property
    def config(self) -> ExecConfig:
        return self._config

    def _derive(self, config: ExecConfig) -> "CommandExecutor":
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._config = config
        return clone

    def with_config(self, config: ExecConfig) -> "CommandExecutor":
        return self._derive(self._config.merge(config))

    def compose(self, other: "CommandExecutor") -> "CommandExecutor":
        """Layer ``other``'s settings over this executor's; ``other`` wins on conflicts."""
        return self.with_config(other.config)

    def with_cwd(self, cwd: str) -> "CommandExecutor":
        return self.with_config(ExecConfig(cwd=cwd))

    def with_env(self, entries: Mapping[str, str]) -> "CommandExecutor":
        return self.with_config(ExecConfig().with_env(entries))

    def with_stdout(self, stream: Any) -> "CommandExecutor":
        return self.with_config(ExecConfig(stdout=stream))

    def with_stderr(self, stream: Any) -> "CommandExecutor":
        return self.with_config(ExecConfig(stderr=stream))

    def run(self, program: str, *args: str, cancel: Optional[CancelToken] = None) -> CommandResult:
        """Run ``program`` with ``args`` and raise ``CommandError`` on a non-zero exit."""
        return self._execute(program, list(args), capture=False, cancel=cancel)

    def output(self, program: str, *args: str, cancel: Optional[CancelToken] = None) -> str:
        """Run ``program`` and return its standard output as text."""
        return self._execute(program, list(args), capture=True, cancel=cancel).stdout

    def _execute(
        self,
        program: str,
        args: List[str],
        capture: bool,
        cancel: Optional[CancelToken],
    ) -> CommandResult:
        argv = [program] + args
        check_cancelled(cancel, f"running {program}")
        if is_debug_enabled(logger):
            logger.debug(
                "Running %s...",
                " ".join(argv),
                extra=extra_context(event="exec", component="cmdexec", cwd=self._config.cwd),
            )
        with Timer() as t:
            result = self._spawn(argv, self._config, capture)
        if is_debug_enabled(logger):
            logger.debug(
                "%s exited with %d",
                program,
                result.returncode,
                extra=extra_context(event="exec_done", component="cmdexec", duration_ms=t.duration_ms()),
            )
        if result.returncode != 0:
            raise CommandError(argv, result.returncode, result.stdout, result.stderr)
        return result

    def _spawn(self, argv: Sequence[str], config: ExecConfig, capture: bool) -> CommandResult:
        streams = _Streams()
        streams.stdout = _resolve_stream("stdout", config.stdout, capture, streams)
        streams.stderr = _resolve_stream("stderr", config.stderr, False, streams)
        env = config.environment()
        try:
            proc = subprocess.run(
                list(argv),
                cwd=config.cwd,
                env=env,
                stdout=streams.stdout,
                stderr=streams.stderr,
                check=False,
            )
        except OSError as exc:
            # Missing binary or unusable cwd behaves like a failed command.
            return CommandResult(list(argv), 127, "", str(exc))

        out = _decode(proc.stdout)
        err = _decode(proc.stderr)
        if "stdout" in streams.sinks:
            streams.sinks["stdout"].write(out)
        if "stderr" in streams.sinks:
            streams.sinks["stderr"].write(err)
        return CommandResult(list(argv), proc.returncode, out, err)


def _decode(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def inherit_path(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return ``{"PATH": ...}`` from ``environ`` (defaults to os.environ)."""
    source = os.environ if environ is None else environ
    return {"PATH": source.get("PATH", "")}
