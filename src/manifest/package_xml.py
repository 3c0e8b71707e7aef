"""Parser for package.xml manifests shipped at the root of PECL archives.

Only the parts of the package-2.0 schema the build pipeline relies on are
read; unknown elements are ignored. Namespaces are dropped so that documents
with and without the ``http://pear.php.net/dtd/package-2.0`` namespace parse
the same way.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from errors import ConfigurationError
from common.logging_utils import extra_context
from versioning.models import Stability

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

logger = logging.getLogger(__name__)


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]
        for key in [k for k in elem.attrib if "}" in k]:
            elem.attrib[key.split("}", 1)[1]] = elem.attrib.pop(key)
    return root


def _text(elem: Optional[ET.Element], path: str) -> str:
    if elem is None:
        return ""
    child = elem.find(path)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _texts(elem: Optional[ET.Element], path: str) -> List[str]:
    if elem is None:
        return []
    return [c.text.strip() for c in elem.findall(path) if c.text and c.text.strip()]


def _stability(value: str, where: str) -> Stability:
    stability = Stability.from_string(value)
    if stability is Stability.UNKNOWN and value:
        logger.warning(
            "unsupported stability %r in %s",
            value,
            where,
            extra=extra_context(event="unknown_stability", component="manifest"),
        )
    return stability


def _version_pair(elem: Optional[ET.Element]) -> VersionPair:
    return VersionPair(release=_text(elem, "release"), api=_text(elem, "api"))


def _stability_pair(elem: Optional[ET.Element], where: str) -> StabilityPair:
    return StabilityPair(
        release=_stability(_text(elem, "release"), where),
        api=_stability(_text(elem, "api"), where),
    )


def _extension_deps(elem: Optional[ET.Element]) -> List[ExtensionDependency]:
    if elem is None:
        return []
    deps = []
    for ext in elem.findall("extension"):
        name = _text(ext, "name")
        if not name:
            continue
        deps.append(
            ExtensionDependency(
                name=name,
                minimum=_text(ext, "min"),
                maximum=_text(ext, "max"),
                exclude=_texts(ext, "exclude"),
            )
        )
    return deps


def parse_manifest(content: bytes, source: str = "package.xml") -> Manifest:
    """Parse a package.xml document.

    The encoding declared in the XML prolog is honoured.

    Args:
        content: Raw document bytes.
        source: Label used in error and warning messages.

    Returns:
        Manifest: The parsed manifest.

    Raises:
        ConfigurationError: If the document is not well-formed or has no package name.
    """
    try:
        root = _strip_namespaces(ET.fromstring(content))
    except ET.ParseError as exc:
        raise ConfigurationError(f"failed to load {source}: {exc}") from exc
    except LookupError as exc:  # unknown declared encoding
        raise ConfigurationError(f"failed to load {source}: {exc}") from exc

    name = _text(root, "name")
    if not name:
        raise ConfigurationError(f"failed to load {source}: missing package name")

    license_elem = root.find("license")
    required = root.find("dependencies/required")
    php = required.find("php") if required is not None else None

    changelog = []
    for release in root.findall("changelog/release"):
        changelog.append(
            ChangelogEntry(
                version=_version_pair(release.find("version")),
                stability=_stability_pair(release.find("stability"), f"{source} changelog"),
                date=_text(release, "date"),
                time=_text(release, "time"),
                notes=_text(release, "notes"),
            )
        )

    return Manifest(
        name=name,
        summary=_text(root, "summary"),
        description=_text(root, "description"),
        date=_text(root, "date"),
        time=_text(root, "time"),
        version=_version_pair(root.find("version")),
        stability=_stability_pair(root.find("stability"), source),
        license=License(
            name=(license_elem.text or "").strip() if license_elem is not None else "",
            uri=license_elem.get("uri", "") if license_elem is not None else "",
        ),
        php=PhpRequirement(
            minimum=_text(php, "min"),
            maximum=_text(php, "max"),
            exclude=_texts(php, "exclude"),
        ),
        required_extensions=_extension_deps(required),
        optional_extensions=_extension_deps(root.find("dependencies/optional")),
        configure_options=[
            ConfigureOption(
                name=opt.get("name", ""),
                default=opt.get("default", ""),
                prompt=opt.get("prompt", ""),
            )
            for opt in root.findall("extsrcrelease/configureoption")
            if opt.get("name")
        ],
        changelog=changelog,
        provides_extension=_text(root, "providesextension"),
    )


def load_manifest(path: str) -> Manifest:
    """Read and parse the manifest at ``path``.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    logger.debug("Loading %s...", path, extra=extra_context(event="load_manifest", component="manifest"))
    try:
        with open(path, "rb") as fh:
            content = fh.read()
    except OSError as exc:
        raise ConfigurationError(f"failed to load {path}: {exc}") from exc
    return parse_manifest(content, source=path)
