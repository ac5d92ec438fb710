"""
Shared utilities for CLI commands.

Verb parsing for the order-sensitive command grammar and the output
formats the web UI consumes.
"""

import logging
from typing import Iterable, List, Sequence, Tuple

from sdkmanage.core.exceptions import UsageError
from sdkmanage.core.interfaces import PackageInfo
from sdkmanage.cross.sysroot_sync import SyncResult

logger = logging.getLogger(__name__)


USAGE = """\
usage: sdk-manage [global-options] --toolchain {--list | --install <pkg> | --remove <pkg>}
       sdk-manage [global-options] --target {--list | --upgradable <name>
                  | --install [--jfdi] <name> <toolchain> <url>
                  | --remove <name> | --refresh {--all | <name>...}
                  | --update <name> | --sync <name> | --import <name>}
       sdk-manage [global-options] --devel {--list <target> [<search>]
                  | --install <target> <pkgs...> | --remove <target> <pkgs...>}
       sdk-manage [global-options] --sdk {--version | --refresh | --upgradable
                  | --upgrade | --status}
       sdk-manage [global-options] --refresh-all

global options:
  -v, --verbose     Enable verbose output
  -q, --quiet       Enable minimal output (errors only)
  --config PATH     Configuration file (default: $SDK_MANAGE_CONFIG or /etc/sdk-manage.yaml)
  --no-elevate      Do not re-run through sudo when not root
  --version         Show version and exit
  -h, --help        Show this help and exit"""


# ============================================================================
# Argument Parsing
# ============================================================================


def split_verb(argv: Sequence[str], verbs: Iterable[str], what: str) -> Tuple[str, List[str]]:
    """
    Split the leading verb off an argument list.

    Args:
        argv: Arguments, verb first
        verbs: Accepted verbs
        what: Verb group name used in error messages

    Returns:
        Tuple of (verb, remaining arguments)

    Raises:
        UsageError: If the verb is missing or unknown
    """
    if not argv:
        raise UsageError(f"Missing {what} command")
    verb = argv[0]
    if verb not in verbs:
        raise UsageError(f"Unknown {what} command: {verb}")
    return verb, list(argv[1:])


def expect_args(args: Sequence[str], count: int, usage: str) -> List[str]:
    """
    Check that exactly ``count`` arguments were given.

    Raises:
        UsageError: Otherwise, with ``usage`` as message
    """
    if len(args) != count:
        raise UsageError(f"Usage: sdk-manage {usage}")
    return list(args)


def expect_at_least(args: Sequence[str], count: int, usage: str) -> List[str]:
    """Like expect_args, accepting more than ``count`` arguments."""
    if len(args) < count:
        raise UsageError(f"Usage: sdk-manage {usage}")
    return list(args)


# ============================================================================
# Output
# ============================================================================


def print_packages(packages: Iterable[PackageInfo]) -> None:
    """Print ``<name>,i`` for installed and ``<name>,`` for available packages."""
    for info in packages:
        print(f"{info.name},{'i' if info.installed else ''}")


def print_lines(lines: Iterable[str]) -> None:
    for line in lines:
        print(line)


def report_sync(name: str, result: SyncResult) -> None:
    """Log the outcome of a mirror run."""
    for issue in result.errors:
        logger.warning(f"{issue.path}: {issue.message}")
    logger.info(
        f"Synchronized '{name}': {result.copied} copied, {result.unchanged} unchanged, "
        f"{result.deleted} deleted, {len(result.errors)} skipped"
    )
