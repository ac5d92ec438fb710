"""
Development package command implementation.

    sdk-manage --devel {--list <target> [<search>]
                  | --install <target> <pkgs...> | --remove <target> <pkgs...>}

Package changes are followed by a synchronization of the target so the
host mirror picks up new headers.
"""

import logging
from typing import List

from sdkmanage.cli.utils import (
    expect_at_least,
    print_packages,
    report_sync,
    split_verb,
)
from sdkmanage.core.context import SdkContext
from sdkmanage.core.exceptions import UsageError

logger = logging.getLogger(__name__)


def run_list(ctx: SdkContext, args: List[str]) -> int:
    if len(args) not in (1, 2):
        raise UsageError("Usage: sdk-manage --devel --list <target> [<search>]")
    target = args[0]
    search = args[1] if len(args) > 1 else ""
    packages = ctx.targets.packages(target).search(search)
    print_packages(sorted(packages, key=lambda info: info.name))
    return 0


def _change(ctx: SdkContext, args: List[str], verb: str) -> int:
    target, *names = expect_at_least(args, 2, f"--devel {verb} <target> <pkgs...>")
    backend = ctx.targets.packages(target)
    if verb == "--install":
        rc = backend.install(names)
    else:
        rc = backend.remove(names)
    if rc != 0:
        logger.error(f"zypper exited with code {rc} in target '{target}'")

    report_sync(target, ctx.targets.synchronize(target))
    return rc


def run_install(ctx: SdkContext, args: List[str]) -> int:
    return _change(ctx, args, "--install")


def run_remove(ctx: SdkContext, args: List[str]) -> int:
    return _change(ctx, args, "--remove")


SUBCOMMANDS = {
    "--list": run_list,
    "--install": run_install,
    "--remove": run_remove,
}


def run(ctx: SdkContext, argv: List[str]) -> int:
    """
    Run the devel command.

    Args:
        ctx: Runtime context
        argv: Arguments after ``--devel``

    Returns:
        Exit code (0 for success, zypper's exit code on package failures)
    """
    verb, args = split_verb(argv, SUBCOMMANDS, "devel")
    return SUBCOMMANDS[verb](ctx, args)
