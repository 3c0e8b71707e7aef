"""Resolve, download, build and install extensions, one package or many in parallel."""

from __future__ import annotations

import logging
import os
import shutil
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from archive.fetcher import ArchiveFetcher
from extbuild.orchestrator import BuildOrchestrator, BuildRequest
from common.cancel import CancelToken
from common.logging_utils import Timer, extra_context
from constants import Constants
from errors import AggregateInstallError, ConfigurationError, OperationCancelled
from versioning.models import Stability
from versioning.parser import PackageSpec
from versioning.resolver import VersionResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


def available_cpus() -> int:
    """Number of CPUs this process may run on."""
    if hasattr(os, "sched_getaffinity"):
        return max(1, len(os.sched_getaffinity(0)))
    return os.cpu_count() or 1


@dataclass
class DownloadResult:
    name: str
    version: str
    path: str


@dataclass
class InstallResult:
    name: str
    version: str
    source_dir: str
    configure_args: List[str] = field(default_factory=list)
    removed: bool = False


class InstallCoordinator:
    """Run the resolve -> download -> build pipeline for one or more packages.

    Within a package the steps are sequential. Across packages the work is
    fanned out over a thread pool; the first failure cancels every sibling at
    its next blocking boundary and the run ends with an ``AggregateInstallError``.
    """

    def __init__(
        self,
        resolver: VersionResolver,
        fetcher: ArchiveFetcher,
        orchestrator: Optional[BuildOrchestrator] = None,
        install_dir: Optional[str] = None,
        minimum_stability: Stability = Stability.STABLE,
        cleanup: bool = True,
        parallel: int = 1,
    ):
        self.resolver = resolver
        self.fetcher = fetcher
        self.orchestrator = orchestrator
        self.install_dir = install_dir
        self.minimum_stability = minimum_stability
        self.cleanup = cleanup
        self.parallel = parallel

    def download(self, name: str, constraint: str, cancel: Optional[CancelToken] = None) -> DownloadResult:
        """Resolve ``constraint`` and extract the matching release."""
        version = self.resolver.resolve(name, constraint, self.minimum_stability, cancel=cancel)
        path = self.fetcher.download(name, version, cancel=cancel)
        logger.info(
            "Downloaded %s v%s to %s",
            name,
            version,
            path,
            extra=extra_context(event="downloaded", component="install", package=name, version=version),
        )
        return DownloadResult(name=name, version=version, path=path)

    def install(
        self,
        name: str,
        constraint: str,
        configure_args: Sequence[str] = (),
        cancel: Optional[CancelToken] = None,
    ) -> InstallResult:
        """Download, build and install ``name``.

        The extracted tree is removed afterwards when cleanup is enabled.

        Raises:
            ConfigurationError: If the coordinator has no build orchestrator.
        """
        if self.orchestrator is None:
            raise ConfigurationError("no build orchestrator configured")

        downloaded = self.download(name, constraint, cancel=cancel)
        request = BuildRequest(
            source_dir=downloaded.path,
            manifest_path=os.path.join(downloaded.path, Constants.PACKAGE_XML),
            install_dir=self.install_dir,
            configure_args=list(configure_args),
            parallel=self.parallel,
            cleanup=self.cleanup,
        )
        with Timer() as t:
            self.orchestrator.build(request, cancel=cancel)

        removed = False
        if self.cleanup:
            shutil.rmtree(downloaded.path)
            removed = True

        logger.info(
            "Installed %s v%s",
            name,
            downloaded.version,
            extra=extra_context(
                event="installed",
                component="install",
                package=name,
                version=downloaded.version,
                duration_ms=t.duration_ms(),
            ),
        )
        return InstallResult(
            name=name,
            version=downloaded.version,
            source_dir=downloaded.path,
            configure_args=list(request.configure_args),
            removed=removed,
        )

    def download_many(
        self, specs: Sequence[PackageSpec], max_workers: Optional[int] = None
    ) -> List[DownloadResult]:
        """Download every spec in parallel; results follow the order of ``specs``."""
        return self._fan_out(
            specs,
            lambda spec, token: self.download(spec.name, spec.constraint, cancel=token),
            max_workers,
        )

    def install_many(
        self,
        specs: Sequence[PackageSpec],
        configure_args: Sequence[str] = (),
        max_workers: Optional[int] = None,
    ) -> List[InstallResult]:
        """Install every spec in parallel; results follow the order of ``specs``."""
        return self._fan_out(
            specs,
            lambda spec, token: self.install(spec.name, spec.constraint, configure_args, cancel=token),
            max_workers,
        )

    def _fan_out(
        self,
        specs: Sequence[PackageSpec],
        task: Callable[[PackageSpec, CancelToken], T],
        max_workers: Optional[int],
    ) -> List[T]:
        names = [spec.name for spec in specs]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"extensions requested more than once: {', '.join(duplicates)}")
        if not specs:
            return []

        workers = max(1, min(max_workers or available_cpus(), len(specs)))
        token = CancelToken()
        results: Dict[str, T] = {}
        failures: List[Tuple[str, BaseException]] = []
        cancelled = 0

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=Constants.PROG_NAME) as pool:
            futures: Dict[Future, PackageSpec] = {pool.submit(task, spec, token): spec for spec in specs}
            for future in as_completed(futures):
                spec = futures[future]
                if future.cancelled():
                    cancelled += 1
                    continue
                exc = future.exception()
                if exc is None:
                    results[spec.name] = future.result()
                elif isinstance(exc, OperationCancelled):
                    cancelled += 1
                else:
                    failures.append((spec.name, exc))
                    if not token.cancelled:
                        logger.debug(
                            "Cancelling remaining packages after %s failed",
                            spec.name,
                            extra=extra_context(event="fan_out_cancel", component="install", package=spec.name),
                        )
                        token.cancel(f"{spec.name} failed")
                        for pending in futures:
                            pending.cancel()

        if failures or cancelled:
            raise AggregateInstallError(failures, cancelled=cancelled)
        return [results[spec.name] for spec in specs]
