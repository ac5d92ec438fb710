"""
Target command implementation.

    sdk-manage --target {--list | --upgradable <name>
                  | --install [--jfdi] <name> <toolchain> <url>
                  | --remove <name> | --refresh {--all | <name>...}
                  | --update <name> | --sync <name> | --import <name>}

``--jfdi`` skips the toolchain check on install.
"""

import logging
from typing import List

from sdkmanage.cli.utils import (
    expect_args,
    expect_at_least,
    print_lines,
    report_sync,
    split_verb,
)
from sdkmanage.core.context import SdkContext

logger = logging.getLogger(__name__)


def run_list(ctx: SdkContext, args: List[str]) -> int:
    expect_args(args, 0, "--target --list")
    print_lines(ctx.targets.list_targets())
    return 0


def run_upgradable(ctx: SdkContext, args: List[str]) -> int:
    (name,) = expect_args(args, 1, "--target --upgradable <name>")
    print_lines(ctx.targets.upgradable(name))
    return 0


def run_install(ctx: SdkContext, args: List[str]) -> int:
    jfdi = bool(args) and args[0] == "--jfdi"
    if jfdi:
        args = args[1:]
    name, toolchain, url = expect_args(
        args, 3, "--target --install [--jfdi] <name> <toolchain> <url>"
    )
    return ctx.targets.install(name, toolchain, url, skip_toolchain_check=jfdi)


def run_remove(ctx: SdkContext, args: List[str]) -> int:
    (name,) = expect_args(args, 1, "--target --remove <name>")
    return ctx.targets.remove(name)


def run_refresh(ctx: SdkContext, args: List[str]) -> int:
    usage = "--target --refresh {--all | <name>...}"
    names = expect_at_least(args, 1, usage)
    if "--all" in names:
        expect_args(names, 1, usage)
        return ctx.targets.refresh_all()
    return ctx.targets.refresh(names)


def run_update(ctx: SdkContext, args: List[str]) -> int:
    (name,) = expect_args(args, 1, "--target --update <name>")
    return ctx.targets.update(name)


def run_sync(ctx: SdkContext, args: List[str]) -> int:
    (name,) = expect_args(args, 1, "--target --sync <name>")
    report_sync(name, ctx.targets.synchronize(name))
    return 0


def run_import(ctx: SdkContext, args: List[str]) -> int:
    (name,) = expect_args(args, 1, "--target --import <name>")
    report_sync(name, ctx.targets.import_target(name))
    return 0


SUBCOMMANDS = {
    "--list": run_list,
    "--upgradable": run_upgradable,
    "--install": run_install,
    "--remove": run_remove,
    "--refresh": run_refresh,
    "--update": run_update,
    "--sync": run_sync,
    "--import": run_import,
}


def run(ctx: SdkContext, argv: List[str]) -> int:
    """
    Run the target command.

    Args:
        ctx: Runtime context
        argv: Arguments after ``--target``

    Returns:
        Exit code (0 for success)
    """
    verb, args = split_verb(argv, SUBCOMMANDS, "target")
    return SUBCOMMANDS[verb](ctx, args)
