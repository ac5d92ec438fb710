"""
sdk-manage: administration of a cross-compilation SDK.

Manages cross-toolchains, scratchbox2 targets and their host-visible
mirrors, development packages inside targets, and SDK updates.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sdk-manage")
except PackageNotFoundError:
    __version__ = "0.1.0"
