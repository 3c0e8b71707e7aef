"""Version precedence for PECL release numbers.

PECL versions follow PHP's ``version_compare`` conventions (``5.1.0RC1``,
``3.0.0beta2``, ``1.2.3-dev``, ``2.0.0pl1``) rather than strict SemVer. They
are normalised onto ``packaging.version.Version`` so that comparisons follow
the same ordering: dev < alpha < beta < RC < release < patch level.
"""

import re
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

from packaging.version import InvalidVersion, Version

_PHP_VERSION_RE = re.compile(
    r"""
    ^v?
    (?P<release>\d+(?:\.\d+)*)
    (?:[.\-_+]?
        (?P<label>dev|alpha|a|beta|b|rc|c|pl|patch|p)
        [.\-_]?
        (?P<number>\d*)
    )?
    $
    """,
    re.VERBOSE | re.IGNORECASE,
)

_LABELS = {
    "dev": ".dev",
    "alpha": "a",
    "a": "a",
    "beta": "b",
    "b": "b",
    "rc": "rc",
    "c": "rc",
    "pl": ".post",
    "patch": ".post",
    "p": ".post",
}

# Leading release and pre-release of a PHP_VERSION string; distro suffixes
# such as "-1ubuntu2.14" or "-1+deb11u5" are not part of the match.
_RUNTIME_VERSION_RE = re.compile(
    r"""
    ^\s*v?
    (?P<version>
        \d+(?:\.\d+)*
        (?:[.\-_]?(?:dev|alpha|beta|rc|a|b)\d*(?![a-z]))?
    )
    """,
    re.VERBOSE | re.IGNORECASE,
)

_ZERO = Version("0")


def normalize_version(raw: str) -> str:
    """Rewrite a PHP-style version string into PEP 440 form.

    Strings that do not follow the PHP conventions are returned stripped and
    left for ``packaging`` to judge.
    """
    text = (raw or "").strip()
    m = _PHP_VERSION_RE.match(text)
    if not m:
        return text
    normalized = m.group("release")
    label = m.group("label")
    if label:
        normalized += _LABELS[label.lower()] + (m.group("number") or "0")
    return normalized


@lru_cache(maxsize=4096)
def parse_version(raw: str) -> Version:
    """Parse a PECL version string.

    Raises:
        InvalidVersion: If the string cannot be interpreted as a version.
    """
    return Version(normalize_version(raw))


def try_parse_version(raw: str) -> Optional[Version]:
    """Like ``parse_version`` but returns None for unparseable input."""
    try:
        return parse_version(raw)
    except InvalidVersion:
        return None


def parse_runtime_version(raw: str) -> Optional[Version]:
    """Parse the version reported by a PHP binary, ignoring any vendor suffix.

    >>> str(parse_runtime_version("8.1.2-1ubuntu2.14"))
    '8.1.2'
    >>> str(parse_runtime_version("8.3.0RC5"))
    '8.3.0rc5'

    Returns:
        Optional[Version]: The parsed version, or None if ``raw`` does not
        start with a release number.
    """
    m = _RUNTIME_VERSION_RE.match(raw or "")
    if not m:
        return None
    return try_parse_version(m.group("version"))


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as ``left`` is lower than, equal to or greater than ``right``."""
    lv, rv = parse_version(left), parse_version(right)
    if lv < rv:
        return -1
    if lv > rv:
        return 1
    return 0


def _sort_key(raw: str) -> Tuple[bool, Version, str]:
    parsed = try_parse_version(raw)
    # Unparseable versions rank below every valid one; the raw text breaks ties.
    return (parsed is not None, parsed if parsed is not None else _ZERO, raw)


def sort_versions(versions: Iterable[str], descending: bool = False) -> List[str]:
    """Sort versions by precedence (never lexicographically).

    >>> sort_versions(["1.3.0", "1.5.3", "1.1.1", "2.1.4"], descending=True)
    ['2.1.4', '1.5.3', '1.3.0', '1.1.1']
    """
    return sorted(versions, key=_sort_key, reverse=descending)
