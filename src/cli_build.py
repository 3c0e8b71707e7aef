"""CLI build command: build and install an already extracted extension."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Optional

from extbuild.environment import BuildEnvironment
from extbuild.orchestrator import BuildOrchestrator, BuildRequest
from cmdexec.executor import CommandExecutor
from config import Settings
from constants import Constants
from errors import ConfigurationError
from ui.prompt import InteractivePrompt, NonInteractivePrompt, Prompt

logger = logging.getLogger(__name__)


def make_prompt(stream: Any = None) -> Prompt:
    """Prompt on the terminal only when ``stream`` (stdout by default) is a TTY."""
    stream = sys.stdout if stream is None else stream
    isatty = getattr(stream, "isatty", None)
    if callable(isatty) and isatty():
        return InteractivePrompt()
    return NonInteractivePrompt()


def make_orchestrator(executor: Optional[CommandExecutor] = None) -> BuildOrchestrator:
    return BuildOrchestrator(
        executor=executor,
        prompt=make_prompt(),
        environment=BuildEnvironment.from_environ(),
    )


def find_manifest(source_dir: str, xml_path: Optional[str] = None) -> str:
    """Locate package.xml: explicit path, then ``source_dir``, then its parent.

    Raises:
        ConfigurationError: If no manifest can be found.
    """
    if xml_path:
        return xml_path
    source = os.path.abspath(source_dir)
    for candidate in (
        os.path.join(source, Constants.PACKAGE_XML),
        os.path.join(os.path.dirname(source), Constants.PACKAGE_XML),
    ):
        if os.path.isfile(candidate):
            return candidate
    raise ConfigurationError(f"no {Constants.PACKAGE_XML} found in {source} or its parent directory")


def run_build(args: Any, settings: Settings) -> None:
    """Entry point for the build command."""
    source_dir = os.path.abspath(args.source)
    request = BuildRequest(
        source_dir=source_dir,
        manifest_path=find_manifest(source_dir, getattr(args, "XML", None)),
        install_dir=settings.install_dir,
        configure_args=list(getattr(args, "CONFIGURE_ARGS", [])),
        parallel=settings.jobs or 1,
        cleanup=settings.cleanup,
    )
    manifest = make_orchestrator().build(request)
    logger.info("Built %s from %s", manifest.name, source_dir)
