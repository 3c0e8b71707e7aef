"""Composer-style version constraints.

Supported grammar (as used for PECL extension constraints)::

    *                      any version
    1.2.3  =1.2.3  ==1.2.3 exact
    >1.2  >=1.2  <2  <=2  !=1.5  <>1.5
    ~1.2.3                 >=1.2.3,<1.3
    ~1.2                   >=1.2,<2
    ^1.2.3                 >=1.2.3,<2
    ^0.3                   >=0.3,<0.4
    1.2.*  1.2.x           >=1.2,<1.3
    1.0 - 2.0              >=1.0,<2.1      (partial upper bound)
    1.0.0 - 2.1.0          >=1.0.0,<=2.1.0

Conjunctions are separated by commas or whitespace, disjunctions by ``||``
(or a single ``|``). A trailing ``@stability`` flag is accepted and ignored;
stability filtering is applied separately by the resolver.

Lower bounds of ``>=``, ``~``, ``^``, wildcards and ranges, and exclusive
upper bounds, are anchored on the ``dev`` pre-release of the bound, so that
``1.2.*`` excludes ``1.3.0RC1`` but ``~5.1.0`` admits ``5.1.0RC1``.
"""

import operator
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from packaging.version import InvalidVersion, Version

from errors import ConfigurationError

from .compare import normalize_version, try_parse_version

_OPS: Dict[str, Callable[[Version, Version], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}

_ATOM_RE = re.compile(r"^(?P<op>>=|<=|!=|<>|==|>|<|=|~|\^)?(?P<version>.+)$")
_WILDCARD_RE = re.compile(r"^v?(?P<prefix>\d+(?:\.\d+)*)\.[*x]$", re.IGNORECASE)
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_STABILITY_FLAG_RE = re.compile(r"@[a-zA-Z]+$")
_RELEASE_RE = re.compile(r"^v?(?P<release>\d+(?:\.\d+)*)")


@dataclass(frozen=True)
class Comparison:
    """A single ``<op> <version>`` test."""
    op: str
    version: Version

    def matches(self, candidate: Version) -> bool:
        return _OPS[self.op](candidate, self.version)

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


@dataclass(frozen=True)
class Constraint:
    """Disjunction of conjunctions of comparisons.

    An empty conjunction matches every version (``*``).
    """
    text: str
    groups: Sequence[Sequence[Comparison]]

    def matches(self, version: str) -> bool:
        """Return True if ``version`` satisfies the constraint; unparseable versions never do."""
        parsed = try_parse_version(version)
        if parsed is None:
            return False
        return self.matches_parsed(parsed)

    def matches_parsed(self, version: Version) -> bool:
        return any(all(c.matches(version) for c in group) for group in self.groups)

    def __str__(self) -> str:
        return self.text


def _version(raw: str) -> Version:
    try:
        return Version(normalize_version(raw))
    except InvalidVersion as exc:
        raise ConfigurationError(f"invalid version {raw!r}") from exc


def _floor(raw: str) -> Version:
    """Lowest version of ``raw``'s release line: its ``dev`` pre-release when no suffix is given."""
    v = _version(raw)
    if v.pre is None and v.dev is None and v.post is None:
        return Version(f"{v.base_version}.dev0")
    return v


def _release_parts(raw: str) -> List[int]:
    m = _RELEASE_RE.match(raw.strip())
    if not m:
        raise ConfigurationError(f"invalid version {raw!r}")
    return [int(p) for p in m.group("release").split(".")]


def _join(parts: Sequence[int]) -> str:
    return ".".join(str(p) for p in parts)


def _tilde(raw: str) -> List[Comparison]:
    parts = _release_parts(raw)
    if len(parts) == 1:
        upper = [parts[0] + 1]
    else:
        upper = parts[:-1]
        upper[-1] += 1
    return [Comparison(">=", _floor(raw)), Comparison("<", _floor(_join(upper)))]


def _caret(raw: str) -> List[Comparison]:
    parts = _release_parts(raw)
    idx = next((i for i, p in enumerate(parts) if p != 0), len(parts) - 1)
    upper = parts[:idx] + [parts[idx] + 1]
    return [Comparison(">=", _floor(raw)), Comparison("<", _floor(_join(upper)))]


def _wildcard(prefix: str) -> List[Comparison]:
    parts = [int(p) for p in prefix.split(".")]
    upper = parts[:-1] + [parts[-1] + 1]
    return [Comparison(">=", _floor(prefix)), Comparison("<", _floor(_join(upper)))]


def _hyphen(low: str, high: str) -> List[Comparison]:
    comparisons = [Comparison(">=", _floor(low))]
    high_parts = _release_parts(high)
    if len(high_parts) < 3 and try_parse_version(high) is not None and _version(high).pre is None:
        upper = high_parts[:-1] + [high_parts[-1] + 1]
        comparisons.append(Comparison("<", _floor(_join(upper))))
    else:
        comparisons.append(Comparison("<=", _version(high)))
    return comparisons


def _atom(token: str) -> List[Comparison]:
    token = _STABILITY_FLAG_RE.sub("", token)
    if token in ("*", "x", "X", ""):
        return []

    wildcard = _WILDCARD_RE.match(token)
    if wildcard:
        return _wildcard(wildcard.group("prefix"))

    m = _ATOM_RE.match(token)
    if not m:
        raise ConfigurationError(f"invalid constraint term {token!r}")
    op = m.group("op") or "=="
    raw = m.group("version")

    if op == "~":
        return _tilde(raw)
    if op == "^":
        return _caret(raw)
    if op == "=":
        op = "=="
    elif op == "<>":
        op = "!="

    if op in (">=", "<"):
        return [Comparison(op, _floor(raw))]
    return [Comparison(op, _version(raw))]


def _conjunction(part: str) -> List[Comparison]:
    hyphen = _HYPHEN_RE.match(part)
    if hyphen:
        return _hyphen(hyphen.group("low"), hyphen.group("high"))

    # Allow whitespace between an operator and its operand (">= 1.2").
    part = re.sub(r"(>=|<=|!=|<>|==|>|<|=|~|\^)\s+", r"\1", part)
    comparisons: List[Comparison] = []
    for token in re.split(r"[\s,]+", part):
        if token:
            comparisons.extend(_atom(token))
    return comparisons


def parse_constraint(text: str) -> Constraint:
    """Parse a constraint expression.

    Raises:
        ConfigurationError: If the expression is empty or malformed.
    """
    if text is None or not text.strip():
        raise ConfigurationError("empty version constraint")
    stripped = text.strip()
    groups = []
    for part in re.split(r"\s*\|\|?\s*", stripped):
        if not part:
            raise ConfigurationError(f"invalid version constraint {text!r}: empty alternative")
        try:
            groups.append(tuple(_conjunction(part)))
        except ConfigurationError as exc:
            raise ConfigurationError(f"invalid version constraint {text!r}: {exc}") from exc
    return Constraint(text=stripped, groups=tuple(groups))


def php_version_constraint(
    minimum: Optional[str],
    maximum: Optional[str],
    exclude: Sequence[str] = (),
) -> Constraint:
    """Build the runtime range declared by a manifest; every bound is optional."""
    comparisons: List[Comparison] = []
    labels: List[str] = []
    if minimum:
        comparisons.append(Comparison(">=", _version(minimum)))
        labels.append(f">={minimum}")
    if maximum:
        comparisons.append(Comparison("<=", _version(maximum)))
        labels.append(f"<={maximum}")
    for excluded in exclude:
        if excluded:
            comparisons.append(Comparison("!=", _version(excluded)))
            labels.append(f"!={excluded}")
    return Constraint(text=",".join(labels) or "*", groups=(tuple(comparisons),))
