"""Constants used in the project."""

import os
import tempfile
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    NOT_FOUND = 3
    DEPENDENCY_ERROR = 4
    BUILD_ERROR = 5
    CONFIG_ERROR = 6
    INTERRUPTED = 130


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PROG_NAME = "peclforge"
    VERSION = "0.4.0"

    REGISTRY_URL_PECL = "https://pecl.php.net/rest"
    EXTENSION_INDEX_URL = "https://storage.googleapis.com/notpecl/extensions.json"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "peclforge/0.4.0"

    DOWNLOAD_DIR = os.path.join(tempfile.gettempdir(), "peclforge")
    PACKAGE_XML = "package.xml"
    DEFAULT_CONSTRAINT = "*"

    # Hardened toolchain defaults; PHP_CFLAGS/PHP_CPPFLAGS/PHP_LDFLAGS override them.
    DEFAULT_CFLAGS = "-fstack-protector-strong -fpic -fpie -O2 -D_LARGEFILE_SOURCE -D_FILE_OFFSET_BITS=64"
    DEFAULT_CPPFLAGS = "-fstack-protector-strong -fpic -fpie -O2 -D_LARGEFILE_SOURCE -D_FILE_OFFSET_BITS=64"
    DEFAULT_LDFLAGS = "-Wl,-O1 -Wl,--hash-style=both -pie"

    ENV_PREFIX = "PECLFORGE_"
    ENV_LOG_LEVEL = "PECLFORGE_LOG_LEVEL"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    STABILITIES = ["stable", "beta", "alpha", "devel", "snapshot"]
    ARCHIVE_CHUNK_SIZE = 64 * 1024
