"""
Capability interfaces for sdk-manage.

The target store depends only on these interfaces. Production
implementations wrap external tools (zypper, scratchbox2, requests, the
IDE notifier); tests substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

# ============================================================================
# Data Types
# ============================================================================


@dataclass(frozen=True)
class PackageInfo:
    """
    A package or pattern as reported by the package backend.

    Attributes:
        name: Package/pattern name
        installed: Whether it is currently installed
        version: Version string, if reported
        repository: Repository alias, if reported
    """

    name: str
    installed: bool
    version: str = ""
    repository: str = ""


@dataclass(frozen=True)
class SandboxParams:
    """
    Parameters for initializing a target sandbox.

    Attributes:
        arch: Architecture family token found in the toolchain name
        emulation: CPU transparency (emulator) binary, None for native
        compiler: Cross compiler path
        tools_dir: Root of the host tools used inside the sandbox
    """

    arch: str
    emulation: Optional[str]
    compiler: str
    tools_dir: str = "/"


# ============================================================================
# Interfaces
# ============================================================================


class PackageBackend(ABC):
    """Query and change package state."""

    @abstractmethod
    def search(self, pattern: str, kind: str = "package") -> List[PackageInfo]:
        """
        List installed and installable units matching ``pattern``.

        Args:
            pattern: Name or glob (empty: everything)
            kind: Unit kind ("package" or "pattern")
        """
        pass

    @abstractmethod
    def install(self, names: Sequence[str], kind: str = "package") -> int:
        """Install units, returning the backend's exit code."""
        pass

    @abstractmethod
    def remove(self, names: Sequence[str], kind: str = "package") -> int:
        """Remove units, returning the backend's exit code."""
        pass

    @abstractmethod
    def refresh(self) -> int:
        """Refresh repository metadata, returning the backend's exit code."""
        pass

    @abstractmethod
    def dist_upgrade(self) -> int:
        """Upgrade everything, returning the backend's exit code."""
        pass

    @abstractmethod
    def list_updates(self) -> List[str]:
        """Names of packages with an available update."""
        pass

    def find(self, name: str, kind: str = "package") -> Optional[PackageInfo]:
        """Return the unit called exactly ``name``, or None if unknown."""
        for info in self.search(name, kind):
            if info.name == name:
                return info
        return None


class SandboxInitializer(ABC):
    """Per-target sandbox configuration."""

    @abstractmethod
    def config_path(self, name: str) -> Path:
        """Path of the sandbox configuration file of target ``name``."""
        pass

    @abstractmethod
    def has_target(self, name: str) -> bool:
        """True if a sandbox configuration file exists for ``name``."""
        pass

    @abstractmethod
    def target_root(self, name: str) -> Optional[Path]:
        """Target root recorded in the configuration, None if not loadable."""
        pass

    @abstractmethod
    def initialize(self, name: str, target_dir: Path, params: SandboxParams) -> None:
        """Create the sandbox configuration for a freshly unpacked target."""
        pass

    @abstractmethod
    def remove_config(self, name: str) -> None:
        """Delete the sandbox configuration directory of ``name``."""
        pass

    @abstractmethod
    def list_targets(self) -> List[str]:
        """Names of all targets with a sandbox configuration."""
        pass

    @abstractmethod
    def exec_prefix(self, name: str, mode: str = "sdk-install") -> List[str]:
        """Command prefix running a program inside target ``name``."""
        pass


class ArchiveFetcher(ABC):
    """Turn a source reference into a local archive file."""

    @abstractmethod
    def fetch(self, source: str, name: str):
        """
        Fetch the archive for target ``name``.

        Returns:
            FetchedArchive

        Raises:
            DownloadFailedError: On any failure
        """
        pass


class IdeNotifier(ABC):
    """Tell the IDE integration about added and removed targets."""

    @abstractmethod
    def notify(self, name: str, deleted: bool = False) -> None:
        """Report target ``name`` as added (or deleted)."""
        pass


__all__ = [
    "PackageInfo",
    "SandboxParams",
    "PackageBackend",
    "SandboxInitializer",
    "ArchiveFetcher",
    "IdeNotifier",
]
