"""Environment overlay applied to every build step."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from cmdexec.executor import inherit_path
from constants import Constants


def _lookup(environ: Mapping[str, str], name: str, default: str) -> str:
    """Return ``environ[name]``, or ``default`` when unset or empty."""
    return environ.get(name) or default


@dataclass(frozen=True)
class BuildEnvironment:
    """PATH, compiler flags and the php-config location, captured once.

    Build steps see exactly the variables returned by ``as_env``; nothing
    else from the parent environment leaks into phpize, configure or make.
    """

    path: str = ""
    cflags: str = Constants.DEFAULT_CFLAGS
    cppflags: str = Constants.DEFAULT_CPPFLAGS
    ldflags: str = Constants.DEFAULT_LDFLAGS
    php_config: Optional[str] = None

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "BuildEnvironment":
        """Resolve the overlay from ``environ`` (defaults to os.environ).

        ``PHP_CFLAGS``, ``PHP_CPPFLAGS`` and ``PHP_LDFLAGS`` override the
        hardened defaults. ``PHP_CONFIG`` overrides the php-config lookup on PATH.
        """
        source = os.environ if environ is None else environ
        path = inherit_path(source)["PATH"]
        php_config = source.get("PHP_CONFIG") or shutil.which("php-config", path=path or None)
        return cls(
            path=path,
            cflags=_lookup(source, "PHP_CFLAGS", Constants.DEFAULT_CFLAGS),
            cppflags=_lookup(source, "PHP_CPPFLAGS", Constants.DEFAULT_CPPFLAGS),
            ldflags=_lookup(source, "PHP_LDFLAGS", Constants.DEFAULT_LDFLAGS),
            php_config=php_config,
        )

    def as_env(self) -> Dict[str, str]:
        return {
            "PATH": self.path,
            "CFLAGS": self.cflags,
            "CPPFLAGS": self.cppflags,
            "LDFLAGS": self.ldflags,
        }
