"""
Privilege handling.

sdk-manage needs root for package management and for writing the target
storage roots. When started unprivileged it re-executes itself through
sudo; sudo records the invoking account in SUDO_USER, which is how the
operator identity survives elevation.
"""

import getpass
import logging
import os
import sys
from typing import List, Optional

from sdkmanage.core.config import CONFIG_ENV_VAR

logger = logging.getLogger(__name__)

# sudo resets the environment; these are passed on as VAR=value arguments.
PRESERVED_ENV = (CONFIG_ENV_VAR,)


def is_elevated() -> bool:
    """Return True when running with an effective uid of 0."""
    return os.geteuid() == 0


def get_operator() -> str:
    """
    Return the unprivileged account that invoked sdk-manage.

    Returns:
        SUDO_USER when elevated through sudo, otherwise the login name
    """
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        return sudo_user
    return getpass.getuser()


def elevation_command(argv: List[str], sudo: str = "sudo") -> List[str]:
    """
    Build the command line that re-runs sdk-manage with elevated privileges.

    Args:
        argv: Arguments of the current invocation (without program name)
        sudo: sudo executable

    Returns:
        Command line for os.execvp
    """
    env = [f"{key}={os.environ[key]}" for key in PRESERVED_ENV if os.environ.get(key)]
    return [sudo, *env, "--", sys.executable, "-m", "sdkmanage", *argv]


def ensure_elevated(argv: List[str], sudo: str = "sudo") -> Optional[int]:
    """
    Re-execute the current command through sudo if not already root.

    Args:
        argv: Arguments of the current invocation (without program name)
        sudo: sudo executable

    Returns:
        None when already elevated. Never returns otherwise: the process
        image is replaced, or an OSError propagates if sudo cannot be run.
    """
    if is_elevated():
        return None

    cmd = elevation_command(argv, sudo)
    logger.debug(f"Re-executing with elevated privileges: {' '.join(cmd)}")
    sys.stdout.flush()
    sys.stderr.flush()
    os.execvp(cmd[0], cmd)
    return None  # pragma: no cover
