"""Build pipeline: dependency checks, configure flags, phpize/configure/make/install/clean."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from cmdexec.executor import CommandExecutor
from common.cancel import CancelToken, check_cancelled
from common.logging_utils import Timer, extra_context
from constants import Constants
from errors import BuildStepError, CommandError, ConfigurationError, DependencyError
from manifest.models import Manifest
from manifest.package_xml import load_manifest
from ui.prompt import NonInteractivePrompt, Prompt
from versioning.compare import parse_runtime_version

from .environment import BuildEnvironment
from .flags import resolve_missing_flags
from .host import HostRuntime, PhpRuntime

logger = logging.getLogger(__name__)

ManifestLoader = Callable[[str], Manifest]


@dataclass
class BuildRequest:
    """One build of an extracted source tree.

    ``configure_args`` is extended in place with the flags resolved from the
    manifest, so the caller can inspect the final ./configure invocation.

    ``parallel`` is advisory only: it records the job count the caller asked
    for, and make always runs without ``-j``.
    """

    source_dir: str
    manifest_path: Optional[str] = None
    install_dir: Optional[str] = None
    configure_args: List[str] = field(default_factory=list)
    parallel: int = 1
    cleanup: bool = True

    def resolved_manifest_path(self) -> str:
        return self.manifest_path or os.path.join(self.source_dir, Constants.PACKAGE_XML)


class BuildOrchestrator:
    """Drive a build through a CommandExecutor.

    Steps run strictly in order and the first failure aborts the pipeline:

    1. load the manifest
    2. check the php version range and required extensions
    3. prompt for configure options missing from the request
    4. skip 5-7 when ``modules/<extension>.so`` already exists, where the
       extension name comes from providesextension, falling back to the package name
    5. phpize
    6. ./configure [args] --with-php-config=<path>
    7. make
    8. make [INSTALL_ROOT=<dir>] install
    9. make clean, when the request asks for cleanup
    """

    def __init__(
        self,
        executor: Optional[CommandExecutor] = None,
        prompt: Optional[Prompt] = None,
        runtime: Optional[HostRuntime] = None,
        environment: Optional[BuildEnvironment] = None,
        manifest_loader: ManifestLoader = load_manifest,
    ):
        self.executor = executor if executor is not None else CommandExecutor()
        self.prompt = prompt if prompt is not None else NonInteractivePrompt()
        self.runtime = runtime if runtime is not None else PhpRuntime(self.executor)
        self.environment = environment if environment is not None else BuildEnvironment.from_environ()
        self.manifest_loader = manifest_loader

    def build(self, request: BuildRequest, cancel: Optional[CancelToken] = None) -> Manifest:
        """Build and install the extension found in ``request.source_dir``.

        Returns:
            Manifest: The manifest the build was driven by.

        Raises:
            ConfigurationError: If the manifest cannot be loaded or php-config is missing.
            DependencyError: If the host runtime does not satisfy the manifest.
            BuildStepError: If phpize, configure, make, make install or make clean fails.
            OperationCancelled: If ``cancel`` fires between two steps.
        """
        manifest = self.manifest_loader(request.resolved_manifest_path())
        self.check_dependencies(manifest)
        resolve_missing_flags(manifest, request.configure_args, self.prompt)

        runner = self.executor.with_cwd(request.source_dir).with_env(self.environment.as_env())
        with Timer() as t:
            if self.artifact_exists(request.source_dir, manifest.extension_name):
                logger.debug(
                    "%s is already built, skipping phpize, configure and make",
                    manifest.name,
                    extra=extra_context(event="build_skip", component="build", package=manifest.name),
                )
            else:
                self._step(runner, manifest.name, "phpize", ["phpize"], cancel)
                self._step(
                    runner,
                    manifest.name,
                    "configure",
                    ["./configure"] + list(request.configure_args) + [self._php_config_flag(manifest.name)],
                    cancel,
                )
                self._step(runner, manifest.name, "make", ["make"], cancel)

            install_args = ["make"]
            if request.install_dir:
                install_args.append(f"INSTALL_ROOT={request.install_dir}")
            install_args.append("install")
            self._step(runner, manifest.name, "make install", install_args, cancel)

            if request.cleanup:
                self._step(runner, manifest.name, "make clean", ["make", "clean"], cancel)

        logger.debug(
            "Built %s",
            manifest.name,
            extra=extra_context(
                event="build_done", component="build", package=manifest.name, duration_ms=t.duration_ms()
            ),
        )
        return manifest

    def check_dependencies(self, manifest: Manifest) -> None:
        """Verify the php version range and the extension dependencies declared by ``manifest``.

        Raises:
            DependencyError: On an out-of-range php version or a disabled required extension.
        """
        logger.debug(
            "Checking extension dependencies...",
            extra=extra_context(event="dependency_check", component="build", package=manifest.name),
        )
        php = manifest.php
        if php.minimum or php.maximum or php.exclude:
            current = self.runtime.php_version()
            parsed = parse_runtime_version(current)
            if parsed is None or not php.constraint().matches_parsed(parsed):
                raise DependencyError(
                    f"{manifest.name} requires php {php} but the current php version is {current}"
                )

        for dep in manifest.required_extensions:
            if not self.runtime.extension_enabled(dep.name):
                raise DependencyError(
                    f"extension {dep.name!r} is required by {manifest.name} but is not enabled"
                )

        for dep in manifest.optional_extensions:
            if not self.runtime.extension_enabled(dep.name):
                logger.info(
                    "Optional extension %r is not enabled.",
                    dep.name,
                    extra=extra_context(event="optional_missing", component="build", package=manifest.name),
                )

    @staticmethod
    def artifact_exists(source_dir: str, name: str) -> bool:
        return os.path.isfile(os.path.join(source_dir, "modules", f"{name}.so"))

    def _php_config_flag(self, package: str) -> str:
        if not self.environment.php_config:
            raise ConfigurationError(
                f"failed to run configure for {package}: php-config not found in PATH, set PHP_CONFIG"
            )
        return f"--with-php-config={self.environment.php_config}"

    def _step(
        self,
        runner: CommandExecutor,
        package: str,
        step: str,
        argv: List[str],
        cancel: Optional[CancelToken],
    ) -> None:
        check_cancelled(cancel, f"building {package}")
        logger.debug(
            "Running %s...",
            step,
            extra=extra_context(event="build_step", component="build", package=package, step=step),
        )
        try:
            runner.run(argv[0], *argv[1:], cancel=cancel)
        except CommandError as exc:
            raise BuildStepError(step, package, exc) from exc
