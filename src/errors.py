"""Exception hierarchy shared by the registry, fetch, build and install layers.

Each layer re-raises with the operation and package it concerns
(``raise X(...) from err``) so the original failure stays reachable through
``__cause__`` while the message carries readable context.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple


class PeclForgeError(Exception):
    """Base class for every error raised by peclforge."""


class NotFoundError(PeclForgeError):
    """Package, release or category unknown to the registry."""


class UnsatisfiableConstraintError(NotFoundError):
    """No released version satisfies a constraint at the requested stability."""

    def __init__(self, name: str, constraint: str):
        super().__init__(f"could not find a version of {name} satisfying \"{constraint}\"")
        self.name = name
        self.constraint = constraint


class TransportError(PeclForgeError):
    """Network or transport-level failure."""


class ProtocolError(PeclForgeError):
    """Unexpected status code or malformed response body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IntegrityError(PeclForgeError):
    """Archive content does not match what its headers declare."""


class ContentTypeError(IntegrityError):
    """Downloaded payload is not a gzip-compressed archive."""


class DependencyError(PeclForgeError):
    """Host runtime version or a required extension is not available."""


class ConfigurationError(PeclForgeError):
    """Invalid constraint expression, setting or missing build tool."""


class OperationCancelled(PeclForgeError):
    """Raised at a blocking boundary once a sibling task failed."""


class CommandError(PeclForgeError):
    """An external program exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stdout: str = "", stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"{' '.join(self.argv)} exited with status {returncode}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class BuildStepError(PeclForgeError):
    """A build pipeline step failed; ``step`` names it (phpize, configure, ...)."""

    def __init__(self, step: str, package: str, reason: object):
        super().__init__(f"failed to run {step} for {package}: {reason}")
        self.step = step
        self.package = package


class AggregateInstallError(PeclForgeError):
    """Summary of a parallel run in which at least one package failed."""

    def __init__(self, failures: List[Tuple[str, BaseException]], cancelled: int = 0):
        self.failures = failures
        self.cancelled = cancelled
        lines = [f"{name}: {exc}" for name, exc in failures]
        summary = f"{len(failures)} package(s) failed"
        if cancelled:
            summary += f", {cancelled} cancelled"
        super().__init__(summary + "\n  " + "\n  ".join(lines))
