"""package.xml manifests: typed models and parser."""

from .models import (
    ChangelogEntry,
    ConfigureOption,
    ExtensionDependency,
    License,
    Manifest,
    PhpRequirement,
    StabilityPair,
    VersionPair,
)
from .package_xml import load_manifest, parse_manifest

__all__ = [
    "ChangelogEntry",
    "ConfigureOption",
    "ExtensionDependency",
    "License",
    "Manifest",
    "PhpRequirement",
    "StabilityPair",
    "VersionPair",
    "load_manifest",
    "parse_manifest",
]
