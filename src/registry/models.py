"""Data models returned by the PECL REST API."""

from dataclasses import dataclass


@dataclass
class PackageInfo:
    """A package as described by ``/p/{name}/info.xml``."""
    name: str
    category: str = ""
    license: str = ""
    summary: str = ""
    description: str = ""
    releases_location: str = ""
    parent_package: str = ""
    deprecating_package: str = ""
    deprecating_channel: str = ""


@dataclass
class Release:
    """A single release as described by ``/r/{name}/{version}.xml``."""
    package: str
    version: str
    stability: str = ""
    license: str = ""
    maintainer: str = ""
    summary: str = ""
    description: str = ""
    release_date: str = ""
    release_notes: str = ""
    partial_uri: str = ""  # download locator without the ".tgz" extension
    package_xml_uri: str = ""

    @property
    def download_url(self) -> str:
        return f"{self.partial_uri}.tgz"
