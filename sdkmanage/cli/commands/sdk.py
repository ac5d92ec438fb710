"""
SDK command implementation.

    sdk-manage --sdk {--version | --refresh | --upgradable | --upgrade | --status}
"""

import logging
from typing import List

from sdkmanage.cli.utils import expect_args, print_lines, split_verb
from sdkmanage.core.context import SdkContext

logger = logging.getLogger(__name__)


def run_version(ctx: SdkContext, args: List[str]) -> int:
    expect_args(args, 0, "--sdk --version")
    print(ctx.host.sdk_version())
    return 0


def run_refresh(ctx: SdkContext, args: List[str]) -> int:
    expect_args(args, 0, "--sdk --refresh")
    return ctx.packages.refresh()


def run_upgradable(ctx: SdkContext, args: List[str]) -> int:
    """Print SDK packages with updates, toolchains excluded."""
    expect_args(args, 0, "--sdk --upgradable")
    updates = ctx.packages.list_updates()
    print_lines(name for name in updates if not ctx.toolchains.is_toolchain(name))
    return 0


def run_upgrade(ctx: SdkContext, args: List[str]) -> int:
    expect_args(args, 0, "--sdk --upgrade")
    return ctx.packages.dist_upgrade()


def run_status(ctx: SdkContext, args: List[str]) -> int:
    """
    Check that the host shared folders are available.

    Returns:
        0 if every expected shared folder is present, 1 otherwise
    """
    expect_args(args, 0, "--sdk --status")
    missing = ctx.host.missing_shared_folders(ctx.config.shared_folders)
    for name in missing:
        print(f"Shared folder '{name}' is missing")
    return 1 if missing else 0


SUBCOMMANDS = {
    "--version": run_version,
    "--refresh": run_refresh,
    "--upgradable": run_upgradable,
    "--upgrade": run_upgrade,
    "--status": run_status,
}


def run(ctx: SdkContext, argv: List[str]) -> int:
    """
    Run the sdk command.

    Args:
        ctx: Runtime context
        argv: Arguments after ``--sdk``

    Returns:
        Exit code (0 for success)
    """
    verb, args = split_verb(argv, SUBCOMMANDS, "sdk")
    return SUBCOMMANDS[verb](ctx, args)
