"""
Runtime wiring.

Builds the concrete collaborators (zypper, scratchbox2, HTTP fetcher, IDE
notifier, VM integration) from an SdkConfig and hands them to the
components that use them. Tests build an SdkContext from fakes instead.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sdkmanage.core.config import SdkConfig
from sdkmanage.core.download import UrlArchiveFetcher
from sdkmanage.core.interfaces import PackageBackend
from sdkmanage.core.locking import TargetLockManager
from sdkmanage.core.process import ProcessRunner
from sdkmanage.cross.sandbox import Scratchbox2Sandbox
from sdkmanage.cross.targets import TargetStore
from sdkmanage.ide.notifier import QtCreatorNotifier
from sdkmanage.packages.zypper import ZypperBackend
from sdkmanage.sdk.host import HostIntegration
from sdkmanage.toolchain.manager import ToolchainManager

logger = logging.getLogger(__name__)


@dataclass
class SdkContext:
    """Everything a command needs to do its work."""

    config: SdkConfig
    packages: PackageBackend
    toolchains: ToolchainManager
    targets: TargetStore
    host: HostIntegration


def create_context(config: SdkConfig, runner: Optional[ProcessRunner] = None) -> SdkContext:
    """
    Create the production context for a configuration.

    Args:
        config: Loaded configuration
        runner: Process runner (default: a new ProcessRunner using the
            configured sudo)

    Returns:
        SdkContext with zypper, scratchbox2 and HTTP backed collaborators
    """
    runner = runner or ProcessRunner(sudo=config.tool("sudo"))

    packages = ZypperBackend(runner, zypper=config.tool("zypper"))
    toolchains = ToolchainManager(packages, pattern=config.toolchain_pattern)
    sandbox = Scratchbox2Sandbox(
        config.sandbox_config_root,
        config.user,
        runner=runner,
        sb2=config.tool("sb2"),
        sb2_init=config.tool("sb2_init"),
    )

    def target_packages(name: str) -> PackageBackend:
        return ZypperBackend(
            runner,
            zypper=config.tool("zypper"),
            prefix=sandbox.exec_prefix(name),
            user=config.user,
        )

    targets = TargetStore(
        config,
        toolchains=toolchains,
        sandbox=sandbox,
        fetcher=UrlArchiveFetcher(
            config.download_dir,
            min_size=config.min_archive_size,
            timeout=config.download_timeout,
        ),
        ide=QtCreatorNotifier(
            config.ide_targets_xml,
            runner=runner,
            tool=config.tool("ide_notifier"),
            user=config.user,
        ),
        target_packages=target_packages,
        runner=runner,
        locks=TargetLockManager(config.lock_dir, timeout=config.lock_timeout),
    )
    host = HostIntegration(
        config.os_release, runner=runner, vbox_control=config.tool("vbox_control")
    )

    logger.debug(f"Context created for user {config.user}")
    return SdkContext(
        config=config,
        packages=packages,
        toolchains=toolchains,
        targets=targets,
        host=host,
    )
