"""Introspection of the PHP runtime installed on the host."""

from __future__ import annotations

import json
import re
import threading
from typing import Optional, Protocol

from cmdexec.executor import CommandExecutor
from errors import CommandError, ConfigurationError, DependencyError

_EXTENSION_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


class HostRuntime(Protocol):
    """What the build pipeline needs to know about the target runtime."""

    def php_version(self) -> str:
        ...

    def extension_enabled(self, name: str) -> bool:
        ...


class PhpRuntime:
    """Query the ``php`` CLI through a CommandExecutor.

    The runtime version is looked up once and memoized.
    """

    def __init__(self, executor: Optional[CommandExecutor] = None, binary: str = "php"):
        self.executor = executor if executor is not None else CommandExecutor()
        self.binary = binary
        self._version: Optional[str] = None
        self._lock = threading.Lock()

    def _eval(self, code: str, what: str):
        try:
            raw = self.executor.output(self.binary, "-r", code)
        except CommandError as exc:
            raise DependencyError(f"could not determine {what}: {exc}") from exc
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise DependencyError(f"could not determine {what}: unexpected output {raw!r}") from exc

    def php_version(self) -> str:
        with self._lock:
            if self._version is None:
                value = self._eval("echo json_encode(PHP_VERSION);", "the current php version")
                if not isinstance(value, str):
                    raise DependencyError(f"could not determine the current php version: got {value!r}")
                self._version = value
            return self._version

    def extension_enabled(self, name: str) -> bool:
        if not _EXTENSION_NAME_RE.match(name):
            raise ConfigurationError(f"invalid extension name {name!r}")
        value = self._eval(
            f"echo json_encode(extension_loaded('{name}'));",
            f"whether extension {name} is enabled",
        )
        return value is True
