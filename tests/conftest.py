"""Shared fixtures: in-memory archives, manifests and fake registry sources."""

import gzip
import io
import tarfile

import pytest

from errors import NotFoundError
from registry.models import Release
from versioning.models import ReleaseSet, Stability

REDIS_PACKAGE_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<package packagerversion="1.10.13" version="2.0" xmlns="http://pear.php.net/dtd/package-2.0">
 <name>redis</name>
 <channel>pecl.php.net</channel>
 <summary>PHP extension for interfacing with key-value stores</summary>
 <description>This extension provides an API for communicating with Redis.</description>
 <date>2024-11-28</date>
 <time>12:00:00</time>
 <version>
  <release>5.1.1</release>
  <api>5.1.0</api>
 </version>
 <stability>
  <release>stable</release>
  <api>stable</api>
 </stability>
 <license uri="https://www.php.net/license">PHP</license>
 <dependencies>
  <required>
   <php>
    <min>7.4.0</min>
    <max>8.4.99</max>
    <exclude>8.0.0</exclude>
   </php>
   <pearinstaller>
    <min>1.4.0b1</min>
   </pearinstaller>
   <extension>
    <name>json</name>
   </extension>
  </required>
  <optional>
   <extension>
    <name>igbinary</name>
   </extension>
   <extension>
    <name>msgpack</name>
   </extension>
  </optional>
 </dependencies>
 <providesextension>redis</providesextension>
 <extsrcrelease>
  <configureoption name="enable-redis-igbinary" default="no" prompt="enable igbinary serializer support?"/>
  <configureoption name="enable-redis-lzf" default="no" prompt="enable lzf compression support?"/>
  <configureoption name="enable-redis-zstd" default="no" prompt="enable zstd compression support?"/>
 </extsrcrelease>
 <changelog>
  <release>
   <stability><release>stable</release><api>stable</api></stability>
   <version><release>5.1.0</release><api>5.1.0</api></version>
   <date>2024-10-04</date>
   <notes>Initial 5.1 release</notes>
  </release>
  <release>
   <stability><release>beta</release><api>beta</api></stability>
   <version><release>5.1.0RC1</release><api>5.1.0</api></version>
   <date>2024-09-01</date>
   <notes>First release candidate</notes>
  </release>
 </changelog>
</package>
"""


def make_tar(entries, truncate_to=None):
    """Build an uncompressed tar from ``(name, bytes)`` pairs, optionally cut short."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, data in entries:
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    raw = buf.getvalue()
    if truncate_to is not None:
        raw = raw[:truncate_to]
    return raw


def make_tgz(entries, truncate_to=None):
    """Gzip-compressed tar archive as produced by the registry."""
    return gzip.compress(make_tar(entries, truncate_to=truncate_to))


class FakeArchiveSource:
    """Registry double serving canned archives and counting network calls."""

    def __init__(self, archives=None, releases=None):
        self.archives = archives or {}
        self.releases = releases or {}
        self.describe_calls = []
        self.download_calls = []

    def list_releases(self, name):
        if name not in self.releases:
            raise NotFoundError(f"could not list releases for {name}: package not found")
        return ReleaseSet(self.releases[name])

    def describe_release(self, name, version):
        self.describe_calls.append((name, version))
        return Release(
            package=name,
            version=version,
            partial_uri=f"https://pecl.php.net/get/{name}-{version}",
        )

    def download_release(self, release):
        self.download_calls.append((release.package, release.version))
        return io.BytesIO(self.archives[(release.package, release.version)])


@pytest.fixture
def redis_archive():
    """A redis 5.1.1 source archive laid out like PECL tarballs."""
    return make_tgz([
        ("package.xml", REDIS_PACKAGE_XML),
        ("redis-5.1.1/config.m4", b"PHP_ARG_ENABLE(redis)\n"),
        ("redis-5.1.1/library.c", b"int main(void) { return 0; }\n"),
        ("redis-5.1.1/tests/TestRedis.php", b"<?php\n"),
    ])


@pytest.fixture
def redis_releases():
    return {
        "redis": {
            "5.1.1": Stability.STABLE,
            "5.1.0": Stability.STABLE,
            "5.1.0RC2": Stability.BETA,
            "5.0.2": Stability.STABLE,
            "6.0.0RC1": Stability.BETA,
        }
    }
