"""
Target name validation.

Target names become path segments under the storage, mirror and sandbox
configuration roots and are passed to external tools, so only a small
character set is accepted.
"""

import re

from sdkmanage.core.exceptions import InvalidTargetNameError

TARGET_NAME_PATTERN = re.compile(r"^[-A-Za-z0-9_.]+$")

# Valid characters, but they would name the parent or the root itself.
_RESERVED_NAMES = {".", ".."}


def is_valid_target_name(name: str) -> bool:
    """
    Check whether ``name`` may be used as a target name.

    Example:
        >>> is_valid_target_name("SailfishOS-armv7hl")
        True
        >>> is_valid_target_name("bad name!")
        False
    """
    if not isinstance(name, str) or name in _RESERVED_NAMES:
        return False
    return TARGET_NAME_PATTERN.fullmatch(name) is not None


def validate_target_name(name: str) -> str:
    """
    Validate a target name.

    Args:
        name: Proposed target name

    Returns:
        The name, unchanged

    Raises:
        InvalidTargetNameError: If the name is empty or contains characters
            other than letters, digits, '-', '_' and '.'
    """
    if not is_valid_target_name(name):
        raise InvalidTargetNameError(name)
    return name
