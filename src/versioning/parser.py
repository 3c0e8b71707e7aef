"""Token parsing utilities for ``extension[:constraint]`` arguments."""

from dataclasses import dataclass
from typing import Optional, Tuple

from constants import Constants
from errors import ConfigurationError


@dataclass(frozen=True)
class PackageSpec:
    """A requested extension and the constraint its version must satisfy."""
    name: str
    constraint: str = Constants.DEFAULT_CONSTRAINT

    def __str__(self) -> str:
        return f"{self.name}:{self.constraint}"


def tokenize_rightmost_colon(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, spec or None) using the rightmost-colon rule."""
    s = s.strip()
    if ':' not in s:
        return s, None
    parts = s.rsplit(':', 1)
    identifier = parts[0].strip()
    spec_part = parts[1].strip() if len(parts) > 1 else ''
    spec = spec_part if spec_part else None
    return identifier, spec


def parse_package_token(token: str) -> PackageSpec:
    """Parse ``redis`` or ``redis:~5.1.0`` into a PackageSpec.

    A missing or ``latest`` constraint means any version (``*``).
    """
    name, spec = tokenize_rightmost_colon(token)
    if not name:
        raise ConfigurationError(f"missing extension name in {token!r}")
    if spec is None or spec.lower() == 'latest':
        spec = Constants.DEFAULT_CONSTRAINT
    return PackageSpec(name=name.lower(), constraint=spec)
