"""
Core functionality for sdk-manage.

This package contains the foundational modules that other components depend
on: exceptions, configuration, process execution, downloads, filesystem
helpers, locking and the capability interfaces.
"""

from .exceptions import SdkManageError
from .config import SdkConfig, load_config
from .interfaces import (
    ArchiveFetcher,
    IdeNotifier,
    PackageBackend,
    PackageInfo,
    SandboxInitializer,
    SandboxParams,
)

__all__ = [
    "SdkManageError",
    "SdkConfig",
    "load_config",
    "ArchiveFetcher",
    "IdeNotifier",
    "PackageBackend",
    "PackageInfo",
    "SandboxInitializer",
    "SandboxParams",
]
