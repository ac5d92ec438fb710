"""
sdk-manage command-line interface.

Global options are parsed with argparse; the order-sensitive command
grammar that follows them is routed by CommandDispatcher.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from sdkmanage import __version__
from sdkmanage.cli.dispatcher import CommandDispatcher
from sdkmanage.cli.utils import USAGE
from sdkmanage.core.exceptions import SdkManageError, UsageError

logger = logging.getLogger(__name__)

_GLOBAL_FLAGS = {
    "-v",
    "--verbose",
    "-q",
    "--quiet",
    "--no-elevate",
    "-h",
    "--help",
    "--version",
}


def split_global_options(argv: List[str]) -> Tuple[List[str], List[str]]:
    """
    Split leading global options from the command.

    Args:
        argv: Full argument list (without program name)

    Returns:
        Tuple of (global options, command arguments)

    Example:
        >>> split_global_options(["-v", "--config", "a.yaml", "--sdk", "--version"])
        (['-v', '--config', 'a.yaml'], ['--sdk', '--version'])
    """
    index = 0
    while index < len(argv):
        token = argv[index]
        if token in _GLOBAL_FLAGS or token.startswith("--config="):
            index += 1
        elif token == "--config":
            index += 2
        else:
            break
    index = min(index, len(argv))
    return list(argv[:index]), list(argv[index:])


class _GlobalOptionParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


class CLI:
    """sdk-manage command-line interface."""

    def __init__(self, dispatcher: Optional[CommandDispatcher] = None):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()
        self.dispatcher = dispatcher or CommandDispatcher()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create the global option parser.

        Returns:
            Configured ArgumentParser instance
        """
        parser = _GlobalOptionParser(
            prog="sdk-manage",
            usage=argparse.SUPPRESS,
            description=USAGE,
            add_help=False,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument("-h", "--help", action="store_true")
        parser.add_argument(
            "--version", action="version", version=f"sdk-manage {__version__}"
        )
        parser.add_argument("--verbose", "-v", action="store_true")
        parser.add_argument("--quiet", "-q", action="store_true")
        parser.add_argument("--config", type=Path, metavar="PATH")
        parser.add_argument("--no-elevate", action="store_true")
        return parser

    def parse_args(self, argv: List[str]) -> Tuple[argparse.Namespace, List[str]]:
        """
        Parse global options.

        Returns:
            Tuple of (parsed global options, command arguments)
        """
        options, command = split_global_options(argv)
        return self.parser.parse_args(options), command

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        argv = list(sys.argv[1:] if args is None else args)

        try:
            options, command = self.parse_args(argv)
        except UsageError as e:
            return self._usage_error(e)

        self._configure_logging(options)

        if options.help:
            print(USAGE)
            return 0

        try:
            # Unknown verbs are rejected before asking for privileges
            self.dispatcher.resolve(command)

            if not options.no_elevate:
                from sdkmanage.core.privilege import ensure_elevated

                ensure_elevated(argv)

            ctx = self._create_context(options)
            return self.dispatcher.dispatch(ctx, command)
        except UsageError as e:
            return self._usage_error(e)
        except SdkManageError as e:
            logger.error(f"Error: {e}")
            return e.exit_code
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if options.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _create_context(self, options):
        from sdkmanage.core.config import load_config
        from sdkmanage.core.context import create_context

        config = load_config(options.config)
        logger.debug(f"Configuration: {config}")
        return create_context(config)

    def _usage_error(self, error: UsageError) -> int:
        print(f"sdk-manage: {error}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return error.exit_code

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
