"""Typed view of a package.xml (package-2.0) manifest."""

from dataclasses import dataclass, field
from typing import List, Optional

from versioning.constraints import Constraint, php_version_constraint
from versioning.models import Stability


@dataclass
class VersionPair:
    release: str = ""
    api: str = ""


@dataclass
class StabilityPair:
    release: Stability = Stability.UNKNOWN
    api: Stability = Stability.UNKNOWN


@dataclass
class License:
    name: str = ""
    uri: str = ""


@dataclass
class PhpRequirement:
    """Host runtime range; each bound is optional."""
    minimum: str = ""
    maximum: str = ""
    exclude: List[str] = field(default_factory=list)

    def constraint(self) -> Constraint:
        return php_version_constraint(self.minimum or None, self.maximum or None, self.exclude)

    def __str__(self) -> str:
        return str(self.constraint())


@dataclass
class ExtensionDependency:
    name: str
    minimum: str = ""
    maximum: str = ""
    exclude: List[str] = field(default_factory=list)


@dataclass
class ConfigureOption:
    """A ./configure flag declared by the package, with its default and prompt."""
    name: str
    default: str = ""
    prompt: str = ""


@dataclass
class ChangelogEntry:
    version: VersionPair
    stability: StabilityPair
    date: str = ""
    time: str = ""
    notes: str = ""


@dataclass
class Manifest:
    """Everything the build pipeline reads from package.xml."""
    name: str
    summary: str = ""
    description: str = ""
    date: str = ""
    time: str = ""
    version: VersionPair = field(default_factory=VersionPair)
    stability: StabilityPair = field(default_factory=StabilityPair)
    license: License = field(default_factory=License)
    php: PhpRequirement = field(default_factory=PhpRequirement)
    required_extensions: List[ExtensionDependency] = field(default_factory=list)
    optional_extensions: List[ExtensionDependency] = field(default_factory=list)
    configure_options: List[ConfigureOption] = field(default_factory=list)
    changelog: List[ChangelogEntry] = field(default_factory=list)
    provides_extension: str = ""

    @property
    def extension_name(self) -> str:
        """Name of the compiled module, taken from providesextension when present."""
        return self.provides_extension or self.name

    def configure_option(self, name: str) -> Optional[ConfigureOption]:
        for option in self.configure_options:
            if option.name == name:
                return option
        return None
