"""Reconcile configure options declared by a manifest with the arguments already supplied."""

from __future__ import annotations

import logging
from typing import Iterable, List, MutableSequence, Set

from common.logging_utils import extra_context
from manifest.models import Manifest
from ui.prompt import Prompt

logger = logging.getLogger(__name__)

BARE_WITH_VALUES = ("yes", "autodetect")


def configured_flag_names(args: Iterable[str]) -> Set[str]:
    """Names of the flags in ``args``, without leading dashes or ``=value`` suffixes.

    >>> sorted(configured_flag_names(["--enable-x=yes", "--with-y"]))
    ['enable-x', 'with-y']
    """
    names = set()
    for arg in args:
        names.add(arg.split("=", 1)[0].lstrip("-"))
    return names


def format_configure_flag(name: str, value: str) -> str:
    """Render a configure flag.

    ``with-*`` options answered ``yes`` or ``autodetect`` are emitted bare
    (``--with-foo``); every other option becomes ``--name=value``.
    """
    if name.startswith("with-") and value in BARE_WITH_VALUES:
        return f"--{name}"
    return f"--{name}={value}"


def resolve_missing_flags(
    manifest: Manifest,
    configure_args: MutableSequence[str],
    prompt: Prompt,
) -> List[str]:
    """Prompt for every declared option absent from ``configure_args`` and append it.

    Args:
        manifest: Parsed package manifest.
        configure_args: Arguments already known; extended in place.
        prompt: Capability used to ask for each missing value.

    Returns:
        List[str]: The flags that were appended, in declaration order.
    """
    present = configured_flag_names(configure_args)
    added: List[str] = []
    for option in manifest.configure_options:
        if option.name in present:
            continue
        value = prompt.ask(option.prompt, option.default)
        flag = format_configure_flag(option.name, value)
        logger.debug(
            "Adding configure flag %s",
            flag,
            extra=extra_context(event="configure_flag", component="build", package=manifest.name),
        )
        configure_args.append(flag)
        added.append(flag)
    return added
