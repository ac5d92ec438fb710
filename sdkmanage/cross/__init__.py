"""
Cross-compilation targets for sdk-manage.

This module provides target name validation, scratchbox2 sandbox
integration, host mirror synchronization and the target lifecycle.
"""

from sdkmanage.cross.naming import is_valid_target_name, validate_target_name
from sdkmanage.cross.sysroot_sync import SyncFilter, SyncResult, SyncRule
from sdkmanage.cross.targets import TargetStore

__all__ = [
    "is_valid_target_name",
    "validate_target_name",
    "SyncFilter",
    "SyncResult",
    "SyncRule",
    "TargetStore",
]
