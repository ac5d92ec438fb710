"""
Refresh-all command implementation.

Refreshes the repositories of every target, then of the SDK itself.
"""

import logging
from typing import List

from sdkmanage.cli.utils import expect_args
from sdkmanage.core.context import SdkContext

logger = logging.getLogger(__name__)


def run(ctx: SdkContext, argv: List[str]) -> int:
    """
    Run the refresh-all command.

    Both refreshes always run.

    Returns:
        First non-zero exit code, or 0
    """
    expect_args(argv, 0, "--refresh-all")
    targets_rc = ctx.targets.refresh_all()
    sdk_rc = ctx.packages.refresh()
    return targets_rc or sdk_rc
