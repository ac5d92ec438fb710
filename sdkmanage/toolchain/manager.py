"""
Cross-toolchain management.

Toolchains are zypper patterns (``Mer-SB2-armv7hl``, ``Mer-SB2-i486``, ...)
installed into the SDK itself.
"""

import fnmatch
import logging
from typing import List

from sdkmanage.core.exceptions import (
    PackageManagerError,
    ToolchainAlreadyInstalledError,
    ToolchainInvalidError,
    ToolchainNotInstalledError,
)
from sdkmanage.core.interfaces import PackageBackend, PackageInfo

logger = logging.getLogger(__name__)

TOOLCHAIN_KIND = "pattern"


class ToolchainManager:
    """List, install and remove cross-toolchains."""

    def __init__(self, packages: PackageBackend, pattern: str = "Mer-SB2-*"):
        """
        Initialize toolchain manager.

        Args:
            packages: Package backend of the SDK
            pattern: Glob selecting toolchain patterns
        """
        self.packages = packages
        self.pattern = pattern

    def is_toolchain(self, name: str) -> bool:
        """Check whether ``name`` falls under the toolchain glob."""
        return fnmatch.fnmatchcase(name, self.pattern)

    def list(self) -> List[PackageInfo]:
        """Installed and installable toolchains, sorted by name."""
        found = self.packages.search(self.pattern, kind=TOOLCHAIN_KIND)
        return sorted(
            (info for info in found if self.is_toolchain(info.name)),
            key=lambda info: info.name,
        )

    def _lookup(self, name: str) -> PackageInfo:
        info = self.packages.find(name, kind=TOOLCHAIN_KIND)
        if info is None:
            raise ToolchainInvalidError(name, "no such toolchain")
        return info

    def install(self, name: str) -> int:
        """
        Install a toolchain.

        Raises:
            ToolchainInvalidError: If the toolchain is unknown
            ToolchainAlreadyInstalledError: If it is already installed
        """
        if self._lookup(name).installed:
            raise ToolchainAlreadyInstalledError(name)
        return self.packages.install([name], kind=TOOLCHAIN_KIND)

    def remove(self, name: str) -> int:
        """
        Remove a toolchain.

        Raises:
            ToolchainNotInstalledError: If it is not installed
        """
        info = self.packages.find(name, kind=TOOLCHAIN_KIND)
        if info is None or not info.installed:
            raise ToolchainNotInstalledError(name)
        return self.packages.remove([name], kind=TOOLCHAIN_KIND)

    def ensure_installed(self, name: str) -> None:
        """
        Make sure a toolchain is installed, installing it if needed.

        Raises:
            ToolchainInvalidError: If the toolchain is unknown
            PackageManagerError: If installing it fails
        """
        if self._lookup(name).installed:
            logger.debug(f"Toolchain {name} is installed")
            return

        logger.info(f"Toolchain {name} is not installed, installing it")
        rc = self.packages.install([name], kind=TOOLCHAIN_KIND)
        if rc != 0:
            raise PackageManagerError(
                "zypper", rc, f"Failed to install toolchain {name} (exit code {rc})"
            )
