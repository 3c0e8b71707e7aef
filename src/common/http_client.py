"""Shared HTTP helpers used by the registry and extension index clients.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. Transport failures surface as
``TransportError``; nothing here retries.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from constants import Constants
from errors import TransportError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def new_session() -> requests.Session:
    """Create a session carrying the default User-Agent."""
    session = requests.Session()
    session.headers.update({"User-Agent": Constants.USER_AGENT})
    return session


def safe_get(
    url: str,
    *,
    context: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable tag for logs and errors (e.g. "list releases for redis").
        session: Optional session; a bare ``requests.get`` is used otherwise.
        timeout: Request timeout in seconds, defaults to Constants.REQUEST_TIMEOUT.
        **kwargs: Passed through to ``requests.get``.

    Returns:
        requests.Response: The HTTP response object, whatever its status.

    Raises:
        TransportError: On timeouts and connection-level failures.
    """
    safe_target = safe_url(url)
    getter = session.get if session is not None else requests.get
    effective_timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = getter(url, timeout=effective_timeout, **kwargs)
        except requests.Timeout as exc:
            raise TransportError(
                f"{context}: request to {safe_target} timed out after {effective_timeout} seconds"
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            raise TransportError(f"{context}: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return res
