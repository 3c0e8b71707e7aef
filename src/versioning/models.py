"""Data models for releases and their stability."""

from enum import IntEnum
from typing import Dict, List

from .compare import sort_versions


class Stability(IntEnum):
    """Release maturity, ordered from least to most mature."""
    UNKNOWN = 0
    SNAPSHOT = 1
    DEVEL = 2
    ALPHA = 3
    BETA = 4
    STABLE = 5

    @classmethod
    def from_string(cls, value: str) -> "Stability":
        """Map registry/manifest text onto a tier; anything unrecognised is UNKNOWN."""
        try:
            return cls[(value or "").strip().upper()]
        except KeyError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.name.lower()


class ReleaseSet(Dict[str, Stability]):
    """Versions of one package mapped to their stability.

    Keys carry no ordering; use ``sorted_versions`` before scanning.
    """

    def sorted_versions(self) -> List[str]:
        """Versions in descending precedence order."""
        return sort_versions(self.keys(), descending=True)
