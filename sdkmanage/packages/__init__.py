"""
Package manager integration for sdk-manage.

zypper drives both the SDK itself and, through sb2, the targets.
"""

from sdkmanage.packages.zypper import ZypperBackend

__all__ = ["ZypperBackend"]
