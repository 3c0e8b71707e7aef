"""Argument parsing functionality for peclforge."""

import argparse
import sys

from constants import Constants


def _add_common_arguments(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--registry-url",
                        dest="REGISTRY_URL",
                        help=f"Base URL of the PECL REST API (default: {Constants.REGISTRY_URL_PECL})",
                        action="store",
                        type=str)


def _add_resolution_arguments(parser):
    parser.add_argument("packages",
                        metavar="EXTENSION[:CONSTRAINT]",
                        help="Extension to fetch, optionally with a version constraint (e.g. redis:~5.1.0)",
                        nargs="+")
    parser.add_argument("--minimum-stability",
                        dest="MINIMUM_STABILITY",
                        help="Lowest stability tier accepted when resolving versions (default: stable)",
                        action="store",
                        type=str.lower,
                        choices=Constants.STABILITIES)
    parser.add_argument("--download-dir",
                        dest="DOWNLOAD_DIR",
                        help=f"Directory archives are extracted into (default: {Constants.DOWNLOAD_DIR})",
                        action="store",
                        type=str)
    parser.add_argument("--index-url",
                        dest="INDEX_URL",
                        help="List releases from this JSON extension index instead of the REST API",
                        action="store",
                        type=str)
    parser.add_argument("-j", "--jobs",
                        dest="JOBS",
                        help="Number of extensions processed in parallel (default: number of CPUs)",
                        action="store",
                        type=int)


def _add_build_arguments(parser):
    parser.add_argument("--install-dir",
                        dest="INSTALL_DIR",
                        help="Root directory passed to make install as INSTALL_ROOT",
                        action="store",
                        type=str)
    parser.add_argument("--no-cleanup",
                        dest="NO_CLEANUP",
                        help="Keep build files (and, for install, the extracted sources)",
                        action="store_true")
    parser.add_argument("--configure-arg",
                        dest="CONFIGURE_ARG",
                        help="Extra ./configure flag, e.g. --configure-arg=--enable-redis-lzf (repeatable)",
                        action="append",
                        type=str,
                        default=[])


def build_parser():
    """Create the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog=Constants.PROG_NAME,
        description="peclforge - download, build and install PECL extensions",
        epilog="Arguments after a standalone '--' are passed to ./configure.",
        add_help=True,
    )
    _add_common_arguments(parser)

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    subparsers.required = True

    download = subparsers.add_parser("download", help="Resolve and extract extensions")
    _add_resolution_arguments(download)

    build = subparsers.add_parser("build", help="Build and install an already extracted extension")
    build.add_argument("source",
                       metavar="SRC",
                       help="Extension source directory (default: current directory)",
                       nargs="?",
                       default=".")
    build.add_argument("--xml",
                       dest="XML",
                       help="Path to package.xml (default: SRC/package.xml, then its parent directory)",
                       action="store",
                       type=str)
    _add_build_arguments(build)

    install = subparsers.add_parser("install", help="Resolve, download, build and install extensions")
    _add_resolution_arguments(install)
    _add_build_arguments(install)

    subparsers.add_parser("version", help="Print the version and exit")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program.

    Everything after the first standalone ``--`` is collected, together with
    ``--configure-arg`` values, into ``CONFIGURE_ARGS``.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    passthrough = []
    if "--" in argv:
        split_at = argv.index("--")
        argv, passthrough = argv[:split_at], argv[split_at + 1:]

    args = build_parser().parse_args(argv)
    args.CONFIGURE_ARGS = list(getattr(args, "CONFIGURE_ARG", None) or []) + passthrough
    return args
