"""PECL registry package.

- client.py: HTTP interactions with the PEAR/PECL REST API
- ext_index.py: alternative release listing read from a JSON extension index
- models.py: package and release descriptions
"""

from .client import PeclRestClient, ReleaseClient
from .ext_index import ExtensionIndexClient
from .models import PackageInfo, Release

__all__ = [
    "PeclRestClient",
    "ReleaseClient",
    "ExtensionIndexClient",
    "PackageInfo",
    "Release",
]
