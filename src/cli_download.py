"""CLI download command and the component wiring shared with install."""

from __future__ import annotations

from typing import Any, List, Optional

from archive.fetcher import ArchiveFetcher
from extbuild.orchestrator import BuildOrchestrator
from common.http_client import new_session
from config import Settings
from install.coordinator import InstallCoordinator
from registry.client import PeclRestClient
from registry.ext_index import ExtensionIndexClient
from versioning.parser import PackageSpec, parse_package_token
from versioning.resolver import VersionResolver


def parse_specs(tokens: List[str]) -> List[PackageSpec]:
    return [parse_package_token(token) for token in tokens]


def make_coordinator(
    settings: Settings,
    orchestrator: Optional[BuildOrchestrator] = None,
) -> InstallCoordinator:
    """Wire registry, resolver, fetcher and (optionally) the build pipeline from ``settings``."""
    session = new_session()
    client = PeclRestClient(settings.registry_url, session=session, timeout=settings.request_timeout)
    source: Any = client
    if settings.index_url:
        source = ExtensionIndexClient(settings.index_url, session=session, timeout=settings.request_timeout)

    return InstallCoordinator(
        resolver=VersionResolver(source),
        fetcher=ArchiveFetcher(client, settings.download_dir),
        orchestrator=orchestrator,
        install_dir=settings.install_dir,
        minimum_stability=settings.minimum_stability,
        cleanup=settings.cleanup,
        parallel=settings.jobs or 1,
    )


def run_download(args: Any, settings: Settings) -> None:
    """Entry point for the download command.

    Prints one ``<name> <version> <path>`` line per extension, in argument order.
    """
    specs = parse_specs(args.packages)
    coordinator = make_coordinator(settings)
    for result in coordinator.download_many(specs, max_workers=settings.jobs):
        print(f"{result.name} {result.version} {result.path}")
