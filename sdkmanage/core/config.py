"""
Configuration for sdk-manage.

Configuration is read from a YAML file and turned into an immutable
SdkConfig that is passed explicitly to every operation. Lookup order for
the file:

    1. --config PATH on the command line
    2. $SDK_MANAGE_CONFIG
    3. /etc/sdk-manage.yaml

A missing file is not an error; all settings have defaults matching the
layout of the SDK virtual machine.

Example file:

    user: mersdk
    storage_root: /srv/mer/targets
    mirror_root: /host_targets
    tools:
      zypper: /usr/bin/zypper
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from sdkmanage.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("/etc/sdk-manage.yaml")
CONFIG_ENV_VAR = "SDK_MANAGE_CONFIG"

DEFAULT_TOOLS = {
    "zypper": "zypper",
    "sb2": "sb2",
    "sb2_init": "sb2-init",
    "sudo": "sudo",
    "ide_notifier": "updateQtCreatorTargets",
    "vbox_control": "VBoxControl",
    "machine_id": "systemd-machine-id-setup",
}


@dataclass(frozen=True)
class SdkConfig:
    """
    Resolved sdk-manage configuration.

    Attributes:
        user: Unprivileged operating user; owns target directories and runs
            sandbox commands
        storage_root: Directory holding the full (private) target trees
        mirror_root: Host-visible directory holding the filtered mirrors
        sandbox_config_root: Directory holding per-target sb2 configs
        download_dir: Scratch directory for downloaded archives
        lock_dir: Directory for per-target lock files
        toolchain_pattern: Glob selecting toolchain patterns in zypper
        ide_targets_xml: Shared XML descriptor passed to the IDE notifier
        os_release: File providing the SDK VERSION_ID
        shared_folders: VM shared folders expected by --sdk --status
        min_archive_size: Smallest plausible target archive in bytes
        low_space_threshold: Free bytes below which unpack failures are
            reported as a disk space problem
        download_timeout: HTTP timeout in seconds
        lock_timeout: Seconds to wait for a target lock
        tools: Executable names/paths of the external tools
    """

    user: str
    storage_root: Path = Path("/srv/mer/targets")
    mirror_root: Path = Path("/host_targets")
    sandbox_config_root: Optional[Path] = None
    download_dir: Path = Path("/var/tmp/sdk-manage")
    lock_dir: Path = Path("/run/lock/sdk-manage")
    toolchain_pattern: str = "Mer-SB2-*"
    ide_targets_xml: Path = Path("/host_targets/targets.xml")
    os_release: Path = Path("/etc/os-release")
    shared_folders: Tuple[str, ...] = ("home", "config", "targets")
    min_archive_size: int = 10000
    low_space_threshold: int = 100 * 1024 * 1024
    download_timeout: int = 30
    lock_timeout: int = 600
    tools: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TOOLS))

    def __post_init__(self):
        if not self.user:
            raise ConfigurationError("Operating user cannot be empty")
        if self.sandbox_config_root is None:
            object.__setattr__(
                self,
                "sandbox_config_root",
                Path(os.path.expanduser(f"~{self.user}")) / ".scratchbox2",
            )

    def tool(self, name: str) -> str:
        """Return the configured executable for an external tool."""
        return self.tools.get(name, DEFAULT_TOOLS.get(name, name))

    def target_dir(self, name: str) -> Path:
        """Private storage directory of a target."""
        return self.storage_root / name

    def mirror_dir(self, name: str) -> Path:
        """Host-visible mirror directory of a target."""
        return self.mirror_root / name


_PATH_KEYS = {
    "storage_root",
    "mirror_root",
    "sandbox_config_root",
    "download_dir",
    "lock_dir",
    "ide_targets_xml",
    "os_release",
}
_INT_KEYS = {
    "min_archive_size",
    "low_space_threshold",
    "download_timeout",
    "lock_timeout",
}


def resolve_config_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """
    Determine which configuration file to read.

    Args:
        explicit: Path given on the command line, if any

    Returns:
        Path to the configuration file, or None if none is configured
    """
    if explicit is not None:
        return Path(explicit)
    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value)
    if DEFAULT_CONFIG_FILE.exists():
        return DEFAULT_CONFIG_FILE
    return None


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        ConfigurationError: If the file is required and missing, or invalid
    """
    if not config_file.exists():
        if required:
            raise ConfigurationError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_file}: {e}") from e

    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration in {config_file} must be a mapping, got {type(data).__name__}"
        )
    return data


def config_from_dict(data: Dict[str, Any], operator: str) -> SdkConfig:
    """
    Build an SdkConfig from a parsed configuration mapping.

    Args:
        data: Parsed YAML mapping
        operator: Invoking operator, used when no 'user' is configured

    Returns:
        SdkConfig instance

    Raises:
        ConfigurationError: On unknown keys or values of the wrong type
    """
    known = {f.name for f in fields(SdkConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    values: Dict[str, Any] = {"user": data.get("user") or operator}
    user_home = Path(os.path.expanduser(f"~{values['user']}"))

    for key, value in data.items():
        if key == "user" or value is None:
            continue
        if key in _PATH_KEYS:
            text = str(value)
            if text == "~" or text.startswith("~/"):
                path = user_home / text[2:]
            else:
                path = Path(text)
            values[key] = path
        elif key in _INT_KEYS:
            try:
                values[key] = int(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"'{key}' must be an integer, got {value!r}")
        elif key == "shared_folders":
            if not isinstance(value, (list, tuple)):
                raise ConfigurationError("'shared_folders' must be a list")
            values[key] = tuple(str(v) for v in value)
        elif key == "tools":
            if not isinstance(value, dict):
                raise ConfigurationError("'tools' must be a mapping")
            tools = dict(DEFAULT_TOOLS)
            tools.update({str(k): str(v) for k, v in value.items()})
            values[key] = tools
        else:
            values[key] = str(value)

    return SdkConfig(**values)


def load_config(
    config_file: Optional[Path] = None, operator: Optional[str] = None
) -> SdkConfig:
    """
    Load sdk-manage configuration.

    Args:
        config_file: Explicit configuration file (required to exist if given)
        operator: Invoking operator (default: detected from the environment)

    Returns:
        SdkConfig instance
    """
    from sdkmanage.core.privilege import get_operator

    path = resolve_config_file(config_file)
    data = load_yaml_config(path, required=config_file is not None) if path else {}
    return config_from_dict(data, operator or get_operator())
