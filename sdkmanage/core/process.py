"""
External process execution.

All external tools (zypper, sb2, the IDE notifier, ...) are started through
ProcessRunner so that the operating user and working directory are passed
explicitly, and so tests can substitute a recording runner.
"""

import getpass
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from sdkmanage.core.exceptions import ExternalToolError, ToolNotFoundError

logger = logging.getLogger(__name__)


class ProcessRunner:
    """
    Run external commands, optionally as another user.

    Commands that must run as the unprivileged operating user are wrapped
    in ``sudo -u USER -H --`` unless the current process already runs as
    that user.
    """

    def __init__(self, sudo: str = "sudo"):
        """
        Initialize process runner.

        Args:
            sudo: sudo executable used to switch users
        """
        self.sudo = sudo

    def build_command(
        self, cmd: Sequence[Union[str, Path]], user: Optional[str] = None
    ) -> List[str]:
        """
        Build the final argv for a command.

        Args:
            cmd: Command and arguments
            user: User to run as (None for the current user)

        Returns:
            Argument list ready for subprocess
        """
        argv = [str(c) for c in cmd]
        if user and user != getpass.getuser():
            argv = [self.sudo, "-u", user, "-H", "--", *argv]
        return argv

    def run(
        self,
        cmd: Sequence[Union[str, Path]],
        user: Optional[str] = None,
        cwd: Optional[Path] = None,
        capture: bool = False,
        check: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a command and wait for it to finish.

        Args:
            cmd: Command and arguments
            user: User to run as (None for the current user)
            cwd: Working directory
            capture: Capture stdout/stderr as text instead of inheriting them
            check: Raise ExternalToolError on non-zero exit

        Returns:
            CompletedProcess instance

        Raises:
            ToolNotFoundError: If the executable does not exist
            ExternalToolError: If check=True and the command fails
        """
        argv = self.build_command(cmd, user)
        logger.debug(f"Running: {' '.join(argv)}" + (f" (cwd={cwd})" if cwd else ""))

        try:
            result = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                capture_output=capture,
                text=True,
            )
        except FileNotFoundError:
            raise ToolNotFoundError(argv[0])

        if result.returncode != 0:
            logger.debug(f"{argv[0]} exited with {result.returncode}")
            if check:
                stderr = (result.stderr or "").strip() if capture else ""
                raise ExternalToolError(
                    str(cmd[0]),
                    result.returncode,
                    f"{cmd[0]} failed with exit code {result.returncode}"
                    + (f": {stderr}" if stderr else ""),
                )

        return result

    def output(
        self,
        cmd: Sequence[Union[str, Path]],
        user: Optional[str] = None,
        cwd: Optional[Path] = None,
    ) -> str:
        """
        Run a command and return its standard output.

        Raises:
            ExternalToolError: If the command fails
        """
        return self.run(cmd, user=user, cwd=cwd, capture=True, check=True).stdout
