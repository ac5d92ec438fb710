"""
SDK virtual machine host integration.

Reports the SDK release and checks that the shared folders the IDE relies
on are mounted from the host.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from sdkmanage.core.exceptions import SdkManageError
from sdkmanage.core.process import ProcessRunner

logger = logging.getLogger(__name__)

_SHARED_FOLDER_LINE = re.compile(r"^\s*\d+\s+-\s+(\S+)")


def parse_os_release(text: str) -> Dict[str, str]:
    """
    Parse os-release(5) content.

    Example:
        >>> parse_os_release('NAME="Mer"\\nVERSION_ID=2.1.0\\n')["VERSION_ID"]
        '2.1.0'
    """
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip().strip("'\"")
    return values


def parse_shared_folders(text: str) -> List[str]:
    """Parse ``VBoxControl sharedfolder list`` output into folder names."""
    names = []
    for line in text.splitlines():
        match = _SHARED_FOLDER_LINE.match(line)
        if match:
            names.append(match.group(1))
    return names


class HostIntegration:
    """Query the SDK release and the VM guest integration."""

    def __init__(
        self,
        os_release: Path = Path("/etc/os-release"),
        runner: Optional[ProcessRunner] = None,
        vbox_control: str = "VBoxControl",
    ):
        self.os_release = Path(os_release)
        self.runner = runner or ProcessRunner()
        self.vbox_control = vbox_control

    def sdk_version(self) -> str:
        """
        Return the SDK release.

        Raises:
            SdkManageError: If the release file is missing or has no VERSION_ID
        """
        try:
            text = self.os_release.read_text(encoding="utf-8")
        except OSError as e:
            raise SdkManageError(f"Cannot read {self.os_release}: {e}") from e

        version = parse_os_release(text).get("VERSION_ID")
        if not version:
            raise SdkManageError(f"No VERSION_ID in {self.os_release}")
        return version

    def shared_folders(self) -> List[str]:
        """Names of the shared folders configured for this VM."""
        output = self.runner.output([self.vbox_control, "-nologo", "sharedfolder", "list"])
        return parse_shared_folders(output)

    def missing_shared_folders(self, expected: Sequence[str]) -> List[str]:
        """Return the expected shared folders that are not configured."""
        present = set(self.shared_folders())
        missing = [name for name in expected if name not in present]
        if missing:
            logger.debug(f"Missing shared folders: {', '.join(missing)}")
        return missing
