"""Version ordering, constraint parsing and release resolution."""

from .compare import compare_versions, parse_version, sort_versions
from .constraints import Constraint, parse_constraint, php_version_constraint
from .models import ReleaseSet, Stability
from .parser import PackageSpec, parse_package_token
from .resolver import ReleaseSource, VersionResolver

__all__ = [
    "Constraint",
    "PackageSpec",
    "ReleaseSet",
    "ReleaseSource",
    "Stability",
    "VersionResolver",
    "compare_versions",
    "parse_constraint",
    "parse_package_token",
    "parse_version",
    "php_version_constraint",
    "sort_versions",
]
