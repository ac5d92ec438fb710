"""
zypper package backend.

Drives zypper either on the SDK itself or, with an sb2 command prefix,
inside a target. Queries use zypper's XML output (``--xmlout``) instead of
its human-readable tables.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Sequence

from sdkmanage.core.exceptions import PackageManagerError
from sdkmanage.core.interfaces import PackageBackend, PackageInfo
from sdkmanage.core.process import ProcessRunner

logger = logging.getLogger(__name__)

# zypper exit code for "no matching items found"
ZYPPER_EXIT_INF_CAP_NOT_FOUND = 104


def parse_search_xml(text: str) -> List[PackageInfo]:
    """
    Parse the output of ``zypper --xmlout search --details``.

    Args:
        text: XML document printed by zypper

    Returns:
        List of PackageInfo, one per name. A name listed with several
        versions is reported once, preferring the installed entry.

    Raises:
        PackageManagerError: If the output is not valid XML
    """
    root = _parse_xml(text)
    result: Dict[str, PackageInfo] = {}
    for solvable in root.iter("solvable"):
        info = PackageInfo(
            name=solvable.get("name", ""),
            installed=solvable.get("status") == "installed",
            version=solvable.get("edition", ""),
            repository=solvable.get("repository", ""),
        )
        if info.name not in result or (info.installed and not result[info.name].installed):
            result[info.name] = info
    return list(result.values())


def parse_updates_xml(text: str) -> List[str]:
    """Parse the output of ``zypper --xmlout list-updates`` into names."""
    root = _parse_xml(text)
    return [update.get("name", "") for update in root.iter("update") if update.get("name")]


def _parse_xml(text: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise PackageManagerError("zypper", 1, f"Unexpected zypper output: {e}") from e


class ZypperBackend(PackageBackend):
    """
    Package backend running zypper.

    Example:
        >>> sdk = ZypperBackend(ProcessRunner())
        >>> target = ZypperBackend(runner, prefix=["sb2", "-t", "alpha", "-m",
        ...                                        "sdk-install", "-R"], user="mersdk")
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        zypper: str = "zypper",
        prefix: Optional[Sequence[str]] = None,
        user: Optional[str] = None,
    ):
        """
        Initialize zypper backend.

        Args:
            runner: Process runner
            zypper: zypper executable
            prefix: Command prefix, e.g. an sb2 invocation to run in a target
            user: User to run as (needed for sb2, which reads the user's
                sandbox configuration)
        """
        self.runner = runner or ProcessRunner()
        self.zypper = zypper
        self.prefix = list(prefix or [])
        self.user = user

    def _command(self, *args: str, xml: bool = False) -> List[str]:
        cmd = [*self.prefix, self.zypper, "--non-interactive"]
        if xml:
            cmd.append("--xmlout")
        return cmd + list(args)

    def _run(self, *args: str) -> int:
        return self.runner.run(self._command(*args), user=self.user).returncode

    def _query(self, *args: str) -> str:
        result = self.runner.run(self._command(*args, xml=True), user=self.user, capture=True)
        if result.returncode == ZYPPER_EXIT_INF_CAP_NOT_FOUND:
            return result.stdout or "<stream/>"
        if result.returncode != 0:
            raise PackageManagerError(
                "zypper",
                result.returncode,
                f"zypper {args[0]} failed with exit code {result.returncode}",
            )
        return result.stdout

    def search(self, pattern: str, kind: str = "package") -> List[PackageInfo]:
        args = ["search", "--details", "-t", kind]
        if pattern:
            args.append(pattern)
        return parse_search_xml(self._query(*args))

    def install(self, names: Sequence[str], kind: str = "package") -> int:
        logger.info(f"Installing {kind}(s): {' '.join(names)}")
        return self._run("install", "-t", kind, *names)

    def remove(self, names: Sequence[str], kind: str = "package") -> int:
        logger.info(f"Removing {kind}(s): {' '.join(names)}")
        return self._run("remove", "-t", kind, *names)

    def refresh(self) -> int:
        return self._run("refresh")

    def dist_upgrade(self) -> int:
        return self._run("dist-upgrade")

    def list_updates(self) -> List[str]:
        return parse_updates_xml(self._query("list-updates"))
