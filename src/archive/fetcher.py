"""Download and extract release archives into a versioned cache directory."""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import PurePosixPath
from typing import BinaryIO, Optional, Protocol

from constants import Constants
from errors import IntegrityError
from common.cancel import CancelToken, check_cancelled
from common.logging_utils import Timer, extra_context, is_debug_enabled
from common.streams import ensure_gzip_signature, peekable
from registry.models import Release

logger = logging.getLogger(__name__)


class ArchiveSource(Protocol):
    """Registry capability used by the fetcher."""

    def describe_release(self, name: str, version: str) -> Release:
        ...

    def download_release(self, release: Release) -> BinaryIO:
        ...


def _member_path(member_name: str, prefix: str) -> Optional[PurePosixPath]:
    """Return the path of an archive entry relative to the extraction root.

    The ``<name>-<version>/`` prefix is stripped when present. Returns None
    for entries that resolve to the root itself.

    Raises:
        IntegrityError: If the entry is absolute or escapes the root.
    """
    path = PurePosixPath(member_name.replace("\\", "/"))
    if path.is_absolute():
        raise IntegrityError(f"archive entry {member_name!r} has an absolute path")
    parts = [p for p in path.parts if p not in ("", ".")]
    if parts and parts[0] == prefix:
        parts = parts[1:]
    if ".." in parts:
        raise IntegrityError(f"archive entry {member_name!r} escapes the extraction directory")
    if not parts:
        return None
    return PurePosixPath(*parts)


class ArchiveFetcher:
    """Fetch ``<name>-<version>`` into ``<download_dir>/<name>-<version>``.

    An existing destination is reused without touching the network.
    Extraction happens in a private staging directory that is renamed into
    place only once every entry has been written, so an interrupted or
    corrupt extraction never leaves a directory that would count as cached.
    """

    def __init__(self, client: ArchiveSource, download_dir: str = Constants.DOWNLOAD_DIR):
        self.client = client
        self.download_dir = download_dir

    def destination(self, name: str, version: str) -> str:
        return os.path.join(self.download_dir, f"{name}-{version}")

    def download(self, name: str, version: str, cancel: Optional[CancelToken] = None) -> str:
        """Make the source tree of ``name`` ``version`` available locally.

        Args:
            name: Package name.
            version: Exact version, as returned by the resolver.
            cancel: Optional token checked before each network call.

        Returns:
            str: Path of the extracted source tree.

        Raises:
            NotFoundError: If the release does not exist.
            ContentTypeError: If the payload is not gzip-compressed.
            IntegrityError: If an entry is truncated, corrupt or escapes the destination.
        """
        dest = self.destination(name, version)
        if os.path.isdir(dest):
            logger.debug(
                "Reusing %s",
                dest,
                extra=extra_context(event="cache_hit", component="fetcher", package=name, version=version),
            )
            return dest

        check_cancelled(cancel, f"downloading {name} v{version}")
        release = self.client.describe_release(name, version)

        check_cancelled(cancel, f"downloading {name} v{version}")
        os.makedirs(self.download_dir, exist_ok=True)
        staging = tempfile.mkdtemp(prefix=f".{name}-{version}-", dir=self.download_dir)
        try:
            with Timer() as t:
                stream = self.client.download_release(release)
                try:
                    self._extract(peekable(stream), staging, f"{name}-{version}", name)
                finally:
                    stream.close()
            os.rename(staging, dest)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            if os.path.isdir(dest):
                # Another worker extracted the same release first.
                return dest
            raise IntegrityError(f"could not extract {name} v{version}: {exc}") from exc
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.debug(
            "Extracted %s v%s",
            name,
            version,
            extra=extra_context(
                event="extracted",
                component="fetcher",
                package=name,
                version=version,
                duration_ms=t.duration_ms(),
            ),
        )
        return dest

    def _extract(self, stream, root: str, prefix: str, name: str) -> None:
        ensure_gzip_signature(stream, f"the archive of {prefix}")
        try:
            with tarfile.open(fileobj=stream, mode="r|gz") as tar:
                for member in tar:
                    if not member.isfile():
                        continue
                    relative = _member_path(member.name, prefix)
                    if relative is None:
                        continue
                    target = os.path.join(root, *relative.parts)
                    self._write_member(tar, member, target, name)
        except (tarfile.TarError, EOFError, zlib.error) as exc:
            raise IntegrityError(f"corrupt archive for {prefix}: {exc}") from exc

    def _write_member(self, tar: tarfile.TarFile, member: tarfile.TarInfo, target: str, name: str) -> None:
        if is_debug_enabled(logger):
            logger.debug(
                "Extracting %s",
                member.name,
                extra=extra_context(event="extract_entry", component="fetcher", package=name, size=member.size),
            )
        source = tar.extractfile(member)
        if source is None:
            raise IntegrityError(f"archive entry {member.name!r} has no content")

        os.makedirs(os.path.dirname(target), exist_ok=True)
        written = 0
        with open(target, "wb") as out:
            while True:
                chunk = source.read(Constants.ARCHIVE_CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                written += len(chunk)
        if written != member.size:
            raise IntegrityError(
                f"archive entry {member.name!r} is truncated: "
                f"expected {member.size} bytes, got {written}"
            )
        os.chmod(target, member.mode & 0o777 or 0o644)
