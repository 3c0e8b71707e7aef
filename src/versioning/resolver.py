"""Pick the best released version of a package for a constraint and stability floor."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from common.cancel import CancelToken, check_cancelled
from common.logging_utils import extra_context, is_debug_enabled
from errors import NotFoundError, ProtocolError, TransportError, UnsatisfiableConstraintError

from .constraints import parse_constraint
from .models import ReleaseSet, Stability

logger = logging.getLogger(__name__)


class ReleaseSource(Protocol):
    """Anything able to list the releases of a package (registry client, extension index)."""

    def list_releases(self, name: str) -> ReleaseSet:
        ...


class VersionResolver:
    """Resolve ``name`` + constraint into a concrete version."""

    def __init__(self, source: ReleaseSource):
        self.source = source

    def resolve(
        self,
        name: str,
        constraint: str,
        minimum_stability: Stability = Stability.STABLE,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        """Return the highest version satisfying ``constraint`` at ``minimum_stability`` or above.

        Args:
            name: Package name.
            constraint: Constraint expression (see ``versioning.constraints``).
            minimum_stability: Releases strictly below this tier are skipped.
            cancel: Optional token checked before the registry call.

        Raises:
            ConfigurationError: If the constraint cannot be parsed.
            NotFoundError: If the package is unknown.
            UnsatisfiableConstraintError: If no release qualifies.
        """
        parsed = parse_constraint(constraint)

        check_cancelled(cancel, f"resolving {name}")
        try:
            releases = self.source.list_releases(name)
        except NotFoundError as exc:
            raise NotFoundError(f"could not find extension {name!r}: {exc}") from exc
        except TransportError as exc:
            raise TransportError(f"could not resolve constraint for {name}: {exc}") from exc
        except ProtocolError as exc:
            raise ProtocolError(f"could not resolve constraint for {name}: {exc}", exc.status_code) from exc

        for candidate in releases.sorted_versions():
            stability = releases[candidate]
            if stability < minimum_stability:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Skipping %s %s (%s < %s)",
                        name,
                        candidate,
                        stability,
                        minimum_stability,
                        extra=extra_context(event="resolve_skip", component="resolver", package=name),
                    )
                continue
            if parsed.matches(candidate):
                logger.debug(
                    "Resolved %s %r to %s",
                    name,
                    constraint,
                    candidate,
                    extra=extra_context(event="resolved", component="resolver", package=name),
                )
                return candidate

        raise UnsatisfiableConstraintError(name, constraint)
