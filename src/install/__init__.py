"""Parallel resolve/download/build coordination."""

from .coordinator import DownloadResult, InstallCoordinator, InstallResult, available_cpus

__all__ = ["DownloadResult", "InstallCoordinator", "InstallResult", "available_cpus"]
