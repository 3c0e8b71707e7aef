"""Release source backed by a static JSON extension index.

The index maps extension names to their releases and stability tiers::

    {"redis": {"5.1.1": "stable", "6.0.0RC1": "beta"}}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from constants import Constants
from errors import NotFoundError, ProtocolError
from common.http_client import new_session, safe_get
from common.logging_utils import extra_context, safe_url
from versioning.models import ReleaseSet, Stability

logger = logging.getLogger(__name__)


class ExtensionIndexClient:
    """Lists releases from the extension index; the document is fetched once and cached."""

    def __init__(
        self,
        index_url: str = Constants.EXTENSION_INDEX_URL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.index_url = index_url
        self.session = session if session is not None else new_session()
        self.timeout = timeout
        self._index: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._index is not None:
            return self._index

        context = "could not fetch the extension index"
        res = safe_get(self.index_url, context=context, session=self.session, timeout=self.timeout)
        if res.status_code != 200:
            raise ProtocolError(
                f"{context}: expected status code 200, got {res.status_code}",
                status_code=res.status_code,
            )
        try:
            data = res.json()
        except ValueError as exc:
            raise ProtocolError(f"{context}: malformed JSON response: {exc}") from exc
        if not isinstance(data, dict):
            raise ProtocolError(f"{context}: expected a JSON object")

        logger.debug(
            "Loaded %d extensions from %s",
            len(data),
            safe_url(self.index_url),
            extra=extra_context(event="index_loaded", component="ext_index", count=len(data)),
        )
        self._index = data
        return data

    def list_releases(self, name: str) -> ReleaseSet:
        """Return the releases of ``name`` listed in the index.

        Raises:
            NotFoundError: If the index has no entry for ``name``.
            ProtocolError: If the index or the entry is malformed.
        """
        entry = self._load().get(name)
        if entry is None:
            raise NotFoundError(f"{name} is not listed in the extension index")
        if not isinstance(entry, dict):
            raise ProtocolError(f"malformed extension index entry for {name}")

        releases = ReleaseSet()
        for version, stability in entry.items():
            releases[str(version)] = Stability.from_string(str(stability))
        return releases
