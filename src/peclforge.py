"""peclforge - download, build and install PECL extensions.

    Returns:
        int: Exit code
"""
import logging
import sys

from constants import Constants, ExitCodes
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from config import Settings, load_settings
from errors import (
    AggregateInstallError,
    BuildStepError,
    CommandError,
    ConfigurationError,
    DependencyError,
    IntegrityError,
    NotFoundError,
    OperationCancelled,
    PeclForgeError,
    ProtocolError,
    TransportError,
)

logger = logging.getLogger(__name__)

_EXIT_CODES = [
    (NotFoundError, ExitCodes.NOT_FOUND),
    (TransportError, ExitCodes.CONNECTION_ERROR),
    (ProtocolError, ExitCodes.CONNECTION_ERROR),
    (IntegrityError, ExitCodes.FILE_ERROR),
    (DependencyError, ExitCodes.DEPENDENCY_ERROR),
    (BuildStepError, ExitCodes.BUILD_ERROR),
    (CommandError, ExitCodes.BUILD_ERROR),
    (ConfigurationError, ExitCodes.CONFIG_ERROR),
    (OperationCancelled, ExitCodes.INTERRUPTED),
    (OSError, ExitCodes.FILE_ERROR),
]


def exit_code_for(exc: BaseException) -> ExitCodes:
    """Map an exception to the process exit code.

    A failed parallel run takes the code of its first failure, or INTERRUPTED
    when every unfinished package was cancelled.
    """
    if isinstance(exc, AggregateInstallError):
        if exc.failures:
            return exit_code_for(exc.failures[0][1])
        return ExitCodes.INTERRUPTED
    for exc_type, code in _EXIT_CODES:
        if isinstance(exc, exc_type):
            return code
    return ExitCodes.BUILD_ERROR


def setup_logging(settings: Settings) -> None:
    """Configure the root logger from the effective settings, adding a file handler if asked."""
    configure_logging(settings.log_level)
    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", settings.log_file)


def run(args) -> ExitCodes:
    """Dispatch a parsed command line and return its exit code."""
    if args.COMMAND == "version":
        print(f"{Constants.PROG_NAME} {Constants.VERSION}")
        return ExitCodes.SUCCESS

    try:
        settings = load_settings(args)
    except ConfigurationError as exc:
        configure_logging()
        logging.error("%s", exc)
        return ExitCodes.CONFIG_ERROR
    setup_logging(settings)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )

    # pylint: disable=import-outside-toplevel
    if args.COMMAND == "download":
        from cli_download import run_download as handler
    elif args.COMMAND == "build":
        from cli_build import run_build as handler
    else:
        from cli_install import run_install as handler

    try:
        handler(args, settings)
    except KeyboardInterrupt:
        logging.error("Interrupted.")
        return ExitCodes.INTERRUPTED
    except (PeclForgeError, OSError) as exc:
        logging.error("%s", exc, exc_info=is_debug_enabled(logger))
        return exit_code_for(exc)
    return ExitCodes.SUCCESS


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    sys.exit(run(args).value)


if __name__ == "__main__":
    main()
