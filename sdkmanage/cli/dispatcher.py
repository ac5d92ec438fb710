"""
Top-level verb routing.

Each top-level verb maps to a command module exposing
``run(ctx, argv) -> int``; modules are imported on demand.
"""

import importlib
import logging
from types import ModuleType
from typing import Dict, List, Optional, Sequence, Tuple

from sdkmanage.cli.utils import split_verb
from sdkmanage.core.context import SdkContext

logger = logging.getLogger(__name__)

COMMAND_MAP = {
    "--toolchain": "sdkmanage.cli.commands.toolchain",
    "--target": "sdkmanage.cli.commands.target",
    "--devel": "sdkmanage.cli.commands.devel",
    "--sdk": "sdkmanage.cli.commands.sdk",
    "--refresh-all": "sdkmanage.cli.commands.refresh_all",
}


class CommandDispatcher:
    """Route ``sdk-manage`` invocations to command modules."""

    def __init__(self, command_map: Optional[Dict[str, str]] = None):
        self.command_map = dict(command_map or COMMAND_MAP)

    def resolve(self, argv: Sequence[str]) -> Tuple[ModuleType, List[str]]:
        """
        Find the command module for an invocation.

        Args:
            argv: Arguments after the global options

        Returns:
            Tuple of (command module, arguments for the command)

        Raises:
            UsageError: If the verb is missing or unknown
        """
        verb, rest = split_verb(argv, self.command_map, "top-level")
        module = importlib.import_module(self.command_map[verb])
        return module, rest

    def dispatch(self, ctx: SdkContext, argv: Sequence[str]) -> int:
        """
        Run the command named by ``argv``.

        Returns:
            Exit code of the command
        """
        module, rest = self.resolve(argv)
        logger.debug(f"Dispatching {argv[0]} to {module.__name__}")
        return module.run(ctx, rest)
