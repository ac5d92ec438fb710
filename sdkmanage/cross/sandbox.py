"""
Scratchbox2 sandbox integration.

Every target has an sb2 configuration at
``<sandbox_config_root>/<name>/sb2.config`` created by ``sb2-init``, which
must be run from inside the unpacked target root. Commands are run inside
a target with ``sb2 -t <name> -m <mode> -R ...``.

The emulation binary and cross compiler used by ``sb2-init`` are derived
from the architecture named in the toolchain, e.g. ``Mer-SB2-armv7hl``.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

from sdkmanage.core.exceptions import ToolchainInvalidError
from sdkmanage.core.filesystem import safe_rmtree
from sdkmanage.core.interfaces import SandboxInitializer, SandboxParams
from sdkmanage.core.process import ProcessRunner

logger = logging.getLogger(__name__)

SB2_CONFIG_NAME = "sb2.config"
TARGET_ROOT_KEY = "SBOX_TARGET_ROOT"

# (architecture regex, emulation, compiler template); first match wins.
_ARCHITECTURES: Tuple[Tuple[re.Pattern, Optional[str], str], ...] = (
    (
        re.compile(r"armv\d+[a-z]*"),
        "/usr/bin/qemu-arm-dynamic",
        "/opt/cross/bin/{arch}-meego-linux-gnueabi-gcc",
    ),
    (
        re.compile(r"aarch64"),
        "/usr/bin/qemu-aarch64-dynamic",
        "/opt/cross/bin/{arch}-meego-linux-gnu-gcc",
    ),
    (
        re.compile(r"mipsel"),
        "/usr/bin/qemu-mipsel-dynamic",
        "/opt/cross/bin/{arch}-meego-linux-gnu-gcc",
    ),
    (
        re.compile(r"i[3-6]86|x86_64"),
        None,
        "/opt/cross/bin/{arch}-meego-linux-gnu-gcc",
    ),
)


def sandbox_params_for(toolchain: str) -> SandboxParams:
    """
    Derive sandbox parameters from a toolchain name.

    Args:
        toolchain: Toolchain pattern name, e.g. 'Mer-SB2-armv7hl'

    Returns:
        SandboxParams for the architecture named in the toolchain

    Raises:
        ToolchainInvalidError: If no known architecture appears in the name

    Example:
        >>> sandbox_params_for("Mer-SB2-i486").emulation is None
        True
    """
    for regex, emulation, compiler in _ARCHITECTURES:
        match = regex.search(toolchain)
        if match:
            arch = match.group(0)
            return SandboxParams(
                arch=arch,
                emulation=emulation,
                compiler=compiler.format(arch=arch),
            )
    raise ToolchainInvalidError(toolchain, "unrecognized architecture")


class Scratchbox2Sandbox(SandboxInitializer):
    """sb2-backed target sandboxes of the operating user."""

    def __init__(
        self,
        config_root: Path,
        user: str,
        runner: Optional[ProcessRunner] = None,
        sb2: str = "sb2",
        sb2_init: str = "sb2-init",
    ):
        """
        Initialize sandbox integration.

        Args:
            config_root: Directory holding per-target sb2 configurations
                (normally ~user/.scratchbox2)
            user: Operating user owning the configurations
            runner: Process runner (default: new ProcessRunner)
            sb2: sb2 executable
            sb2_init: sb2-init executable
        """
        self.config_root = Path(config_root)
        self.user = user
        self.runner = runner or ProcessRunner()
        self.sb2 = sb2
        self.sb2_init = sb2_init

    def config_path(self, name: str) -> Path:
        return self.config_root / name / SB2_CONFIG_NAME

    def has_target(self, name: str) -> bool:
        return self.config_path(name).is_file()

    def target_root(self, name: str) -> Optional[Path]:
        """
        Read the target root recorded in a target's sb2 configuration.

        Returns:
            Target root, or None if the configuration is missing, unreadable
            or does not name a root
        """
        try:
            text = self.config_path(name).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

        for line in text.splitlines():
            line = line.strip()
            if line.startswith("export "):
                line = line[len("export ") :]
            key, sep, value = line.partition("=")
            if sep and key.strip() == TARGET_ROOT_KEY:
                value = value.strip().strip("'\"")
                return Path(value) if value else None
        return None

    def initialize(self, name: str, target_dir: Path, params: SandboxParams) -> None:
        """
        Run sb2-init for a target.

        Raises:
            ExternalToolError: If sb2-init fails
        """
        cmd: List[str] = [self.sb2_init, "-L", "--sysroot=/", "-C", "--sysroot=/"]
        if params.emulation:
            cmd += ["-c", params.emulation]
        cmd += ["-m", "sdk-build", "-n", "-N", "-t", params.tools_dir, name, params.compiler]

        logger.info(f"Initializing sandbox for target '{name}' ({params.arch})")
        self.runner.run(cmd, user=self.user, cwd=target_dir, check=True)

    def remove_config(self, name: str) -> None:
        safe_rmtree(self.config_root / name, require_prefix=self.config_root)

    def list_targets(self) -> List[str]:
        if not self.config_root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.config_root.iterdir()
            if (entry / SB2_CONFIG_NAME).is_file()
        )

    def exec_prefix(self, name: str, mode: str = "sdk-install") -> List[str]:
        return [self.sb2, "-t", name, "-m", mode, "-R"]
