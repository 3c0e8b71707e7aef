"""HTTP client for the PEAR/PECL REST protocol served at https://pecl.php.net/rest.

Only the default pecl channel is supported. Note that this API is quite dated:
category listings are known to miss some packages (e.g. redis is in the
Database category but is not listed there).
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import BinaryIO, List, Optional, Protocol

import requests

from constants import Constants
from errors import NotFoundError, ProtocolError
from common.http_client import new_session, safe_get
from common.logging_utils import extra_context, safe_url
from common.streams import ensure_gzip_signature, peekable
from versioning.models import ReleaseSet, Stability

from .models import PackageInfo, Release

logger = logging.getLogger(__name__)


class ReleaseClient(Protocol):
    """Registry capability consumed by the resolver and the archive fetcher."""

    def list_releases(self, name: str) -> ReleaseSet:
        ...

    def describe_release(self, name: str, version: str) -> Release:
        ...

    def download_release(self, release: Release) -> BinaryIO:
        ...


def _parse_xml(content: bytes, context: str) -> ET.Element:
    """Parse an XML document and drop namespaces from every tag."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ProtocolError(f"{context}: malformed XML response: {exc}") from exc
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]
    return root


def _text(elem: ET.Element, tag: str) -> str:
    child = elem.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


class PeclRestClient:
    """Typed access to the PECL REST endpoints."""

    def __init__(
        self,
        base_uri: str = Constants.REGISTRY_URL_PECL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_uri = base_uri.rstrip("/")
        self.session = session if session is not None else new_session()
        self.timeout = timeout

    def _get(self, url: str, context: str, not_found: str, **kwargs) -> requests.Response:
        res = safe_get(url, context=context, session=self.session, timeout=self.timeout, **kwargs)
        if res.status_code == 404:
            raise NotFoundError(f"{context}: {not_found}")
        if res.status_code != 200:
            raise ProtocolError(
                f"{context}: expected status code 200, got {res.status_code}",
                status_code=res.status_code,
            )
        return res

    def _get_xml(self, url: str, context: str, not_found: str) -> ET.Element:
        return _parse_xml(self._get(url, context, not_found).content, context)

    def list_packages(self) -> List[str]:
        """Names of every package of the channel (``/p/packages.xml``)."""
        root = self._get_xml(
            f"{self.base_uri}/p/packages.xml", "could not list packages", "channel not found"
        )
        return [p.text.strip() for p in root.findall("p") if p.text]

    def list_packages_in_category(self, category: str) -> List[str]:
        """Names of the packages in ``category`` (``/c/{category}/packages.xml``)."""
        root = self._get_xml(
            f"{self.base_uri}/c/{category}/packages.xml",
            f"could not list packages in {category} category",
            "category not found",
        )
        return [p.text.strip() for p in root.findall("p") if p.text]

    def describe_package(self, name: str) -> PackageInfo:
        """Details of a package (``/p/{name}/info.xml``)."""
        root = self._get_xml(
            f"{self.base_uri}/p/{name}/info.xml",
            f"could not describe package {name}",
            "package not found",
        )
        return PackageInfo(
            name=_text(root, "n"),
            category=_text(root, "ca"),
            license=_text(root, "l"),
            summary=_text(root, "s"),
            description=_text(root, "d"),
            releases_location=_text(root, "r"),
            parent_package=_text(root, "pa"),
            deprecating_package=_text(root, "dp"),
            deprecating_channel=_text(root, "dc"),
        )

    def list_releases(self, name: str) -> ReleaseSet:
        """Every release of ``name`` with its stability (``/r/{name}/allreleases.xml``)."""
        root = self._get_xml(
            f"{self.base_uri}/r/{name}/allreleases.xml",
            f"could not list releases for {name}",
            "package not found",
        )
        releases = ReleaseSet()
        for r in root.findall("r"):
            version = _text(r, "v")
            if version:
                releases[version] = Stability.from_string(_text(r, "s"))
        return releases

    def describe_release(self, name: str, version: str) -> Release:
        """Details of one release, including its download locator (``/r/{name}/{version}.xml``)."""
        context = f"could not describe {name} release {version}"
        root = self._get_xml(
            f"{self.base_uri}/r/{name}/{version}.xml", context, "release not found"
        )
        return Release(
            package=_text(root, "p") or name,
            version=_text(root, "v") or version,
            stability=_text(root, "st"),
            license=_text(root, "l"),
            maintainer=_text(root, "m"),
            summary=_text(root, "s"),
            description=_text(root, "d"),
            release_date=_text(root, "da"),
            release_notes=_text(root, "n"),
            partial_uri=_text(root, "g"),
            package_xml_uri=_text(root, "x"),
        )

    def download_release(self, release: Release) -> BinaryIO:
        """Open the release archive as a buffered byte stream.

        The caller owns the returned stream and must close it.

        Raises:
            ProtocolError: On an empty locator or a non-200 response.
            ContentTypeError: If the payload is not gzip-compressed.
        """
        context = f"could not download {release.package} v{release.version}"
        if not release.partial_uri:
            raise ProtocolError(f"{context}: empty download location")

        url = release.download_url
        res = self._get(url, context, "archive not found", stream=True)
        logger.debug(
            "Downloading %s...",
            safe_url(url),
            extra=extra_context(event="download", component="registry", package=release.package),
        )
        stream = peekable(res.raw)
        try:
            return ensure_gzip_signature(stream, f"the file downloaded at {safe_url(url)}")
        except Exception:
            stream.close()
            raise
