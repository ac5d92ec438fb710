"""
IDE target notifications.

The IDE learns about installed targets from a shared XML descriptor
maintained by ``updateQtCreatorTargets``. Notifications are fire-and-forget:
a failing notifier never fails the target operation that triggered it.
"""

import logging
from pathlib import Path
from typing import List, Optional

from sdkmanage.core.exceptions import SdkManageError
from sdkmanage.core.interfaces import IdeNotifier
from sdkmanage.core.process import ProcessRunner

logger = logging.getLogger(__name__)


class QtCreatorNotifier(IdeNotifier):
    """Notify Qt Creator through updateQtCreatorTargets."""

    def __init__(
        self,
        targets_xml: Path,
        runner: Optional[ProcessRunner] = None,
        tool: str = "updateQtCreatorTargets",
        user: Optional[str] = None,
    ):
        """
        Initialize notifier.

        Args:
            targets_xml: Shared XML descriptor listing the targets
            runner: Process runner
            tool: Notifier executable
            user: User to run the notifier as
        """
        self.targets_xml = Path(targets_xml)
        self.runner = runner or ProcessRunner()
        self.tool = tool
        self.user = user

    def command(self, name: str, deleted: bool = False) -> List[str]:
        cmd = [self.tool, "--name", name, "--target-xml", str(self.targets_xml)]
        if deleted:
            cmd.append("--delete")
        return cmd

    def notify(self, name: str, deleted: bool = False) -> None:
        action = "removal" if deleted else "installation"
        try:
            result = self.runner.run(self.command(name, deleted), user=self.user)
        except SdkManageError as e:
            logger.warning(f"Could not notify the IDE about {action} of '{name}': {e}")
            return

        if result.returncode != 0:
            logger.warning(
                f"IDE notification about {action} of '{name}' failed "
                f"with exit code {result.returncode}"
            )
