"""
Toolchain management module for sdk-manage.
"""

from sdkmanage.toolchain.manager import ToolchainManager

__all__ = ["ToolchainManager"]
