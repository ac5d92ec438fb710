"""
Toolchain command implementation.

    sdk-manage --toolchain {--list | --install <pkg> | --remove <pkg>}
"""

import logging
from typing import List

from sdkmanage.cli.utils import expect_args, print_packages, split_verb
from sdkmanage.core.context import SdkContext

logger = logging.getLogger(__name__)


def run_list(ctx: SdkContext, args: List[str]) -> int:
    expect_args(args, 0, "--toolchain --list")
    print_packages(ctx.toolchains.list())
    return 0


def run_install(ctx: SdkContext, args: List[str]) -> int:
    (name,) = expect_args(args, 1, "--toolchain --install <pkg>")
    return ctx.toolchains.install(name)


def run_remove(ctx: SdkContext, args: List[str]) -> int:
    (name,) = expect_args(args, 1, "--toolchain --remove <pkg>")
    return ctx.toolchains.remove(name)


SUBCOMMANDS = {
    "--list": run_list,
    "--install": run_install,
    "--remove": run_remove,
}


def run(ctx: SdkContext, argv: List[str]) -> int:
    """
    Run the toolchain command.

    Args:
        ctx: Runtime context
        argv: Arguments after ``--toolchain``

    Returns:
        Exit code (0 for success)
    """
    verb, args = split_verb(argv, SUBCOMMANDS, "toolchain")
    return SUBCOMMANDS[verb](ctx, args)
