"""CLI install command."""

from __future__ import annotations

from typing import Any

from cli_build import make_orchestrator
from cli_download import make_coordinator, parse_specs
from config import Settings


def run_install(args: Any, settings: Settings) -> None:
    """Entry point for the install command.

    Prints one ``<name> <version>`` line per installed extension, in argument order.
    """
    specs = parse_specs(args.packages)
    coordinator = make_coordinator(settings, orchestrator=make_orchestrator())
    results = coordinator.install_many(
        specs,
        configure_args=getattr(args, "CONFIGURE_ARGS", []),
        max_workers=settings.jobs,
    )
    for result in results:
        print(f"{result.name} {result.version}")
