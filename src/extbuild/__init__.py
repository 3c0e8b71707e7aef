"""Extension build pipeline."""

from .environment import BuildEnvironment
from .flags import configured_flag_names, format_configure_flag, resolve_missing_flags
from .host import HostRuntime, PhpRuntime
from .orchestrator import BuildOrchestrator, BuildRequest

__all__ = [
    "BuildEnvironment",
    "BuildOrchestrator",
    "BuildRequest",
    "HostRuntime",
    "PhpRuntime",
    "configured_flag_names",
    "format_configure_flag",
    "resolve_missing_flags",
]
