"""Release archive download and extraction."""

from .fetcher import ArchiveFetcher, ArchiveSource

__all__ = ["ArchiveFetcher", "ArchiveSource"]
