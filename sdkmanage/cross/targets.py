"""
Target lifecycle management.

A target named ``alpha`` lives in three places:

- ``<storage_root>/alpha``: the full sysroot, owned by the operating user,
- ``<mirror_root>/alpha``: the filtered copy visible to the host IDE,
- ``<sandbox_config_root>/alpha/sb2.config``: its scratchbox2 configuration.

TargetStore installs, synchronizes, imports and removes targets. It talks
to the outside world only through the capability interfaces it is given,
and every mutating operation holds the target's lock.

Lifecycle:

    absent --install--> ready --remove--> absent
    ready --install--> ready (full replace)
    ready --synchronize/import--> ready

A failed install never leaves a partially created target behind.
"""

import contextlib
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from sdkmanage.core.config import SdkConfig
from sdkmanage.core.exceptions import (
    SandboxError,
    SdkManageError,
    TargetNotInstalledError,
    UnpackError,
)
from sdkmanage.core.filesystem import (
    ArchiveExtractionError,
    FilesystemError,
    change_owner,
    extract_archive,
    free_space,
    is_out_of_space,
    safe_rmtree,
)
from sdkmanage.core.interfaces import (
    ArchiveFetcher,
    IdeNotifier,
    PackageBackend,
    SandboxInitializer,
    SandboxParams,
)
from sdkmanage.core.locking import TargetLockManager
from sdkmanage.core.process import ProcessRunner
from sdkmanage.cross.naming import validate_target_name
from sdkmanage.cross.sandbox import sandbox_params_for
from sdkmanage.cross.sysroot_sync import (
    SyncFilter,
    SyncResult,
    full_mirror_filter,
    sysroot_filter,
)
from sdkmanage.toolchain.manager import ToolchainManager

logger = logging.getLogger(__name__)


class TargetStore:
    """Install, synchronize, import and remove targets."""

    def __init__(
        self,
        config: SdkConfig,
        toolchains: ToolchainManager,
        sandbox: SandboxInitializer,
        fetcher: ArchiveFetcher,
        ide: IdeNotifier,
        target_packages: Callable[[str], PackageBackend],
        runner: Optional[ProcessRunner] = None,
        locks: Optional[TargetLockManager] = None,
        sync_filter: Optional[SyncFilter] = None,
    ):
        """
        Initialize target store.

        Args:
            config: sdk-manage configuration (roots, operating user, tools)
            toolchains: Toolchain manager of the SDK
            sandbox: Sandbox configuration backend
            fetcher: Archive fetcher
            ide: IDE notifier
            target_packages: Factory returning the package backend running
                inside a given target
            runner: Process runner for auxiliary tools
            locks: Per-target lock manager (None disables locking)
            sync_filter: Filter for the host mirror (default: sysroot subset)
        """
        self.config = config
        self.toolchains = toolchains
        self.sandbox = sandbox
        self.fetcher = fetcher
        self.ide = ide
        self.target_packages = target_packages
        self.runner = runner or ProcessRunner()
        self.locks = locks
        self.sync_filter = sync_filter or sysroot_filter()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def target_dir(self, name: str) -> Path:
        return self.config.target_dir(name)

    def mirror_dir(self, name: str) -> Path:
        return self.config.mirror_dir(name)

    def exists(self, name: str) -> bool:
        """True if target ``name`` has a sandbox configuration."""
        return self.sandbox.has_target(validate_target_name(name))

    def list_targets(self) -> List[str]:
        return self.sandbox.list_targets()

    def _require(self, name: str) -> None:
        if not self.sandbox.has_target(name):
            raise TargetNotInstalledError(name)

    def _lock(self, name: str):
        if self.locks is None:
            return contextlib.nullcontext()
        return self.locks.target_lock(name)

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def install(
        self,
        name: str,
        toolchain: str,
        source: str,
        skip_toolchain_check: bool = False,
    ) -> int:
        """
        Install (or replace) a target from a sysroot archive.

        Args:
            name: Target name
            toolchain: Toolchain pattern the target is built with; its name
                selects the sandbox architecture
            source: file:// URL, local path or HTTP(S) URL of the archive
            skip_toolchain_check: Do not check or install the toolchain

        Returns:
            0 on success

        Raises:
            InvalidTargetNameError: Invalid name (exit code 1)
            ToolchainInvalidError: Unknown toolchain or architecture (2)
            DownloadFailedError: Archive could not be fetched (3)
            UnpackError: Archive could not be extracted (4)
            ExternalToolError: sb2-init or zypper failed
            SandboxError: sandbox configuration unusable after init (2)
        """
        validate_target_name(name)
        params = sandbox_params_for(toolchain)

        with self._lock(name):
            if not skip_toolchain_check:
                self.toolchains.ensure_installed(toolchain)

            archive = self.fetcher.fetch(source, name)
            try:
                # Replacing a target starts here; any failure leaves it absent.
                self._unpack(name, archive.path)
                self._setup(name, params, archive)
            except BaseException:
                logger.error(f"Installation of target '{name}' failed, cleaning up")
                self._discard(name)
                raise
            finally:
                archive.discard()

        logger.info(f"Target '{name}' installed")
        return 0

    def _unpack(self, name: str, archive_path: Path) -> None:
        target_dir = self.target_dir(name)
        storage_root = self.config.storage_root

        safe_rmtree(target_dir, require_prefix=storage_root)
        target_dir.mkdir(parents=True)

        logger.info(f"Unpacking {archive_path} into {target_dir}")
        try:
            extract_archive(archive_path, target_dir)
        except ArchiveExtractionError as e:
            low_space = (
                is_out_of_space(e)
                or free_space(storage_root) < self.config.low_space_threshold
            )
            safe_rmtree(target_dir, require_prefix=storage_root)
            if low_space:
                message = f"Not enough free disk space to unpack target '{name}'"
            else:
                message = f"Failed to unpack target '{name}': {e}"
            raise UnpackError(message, low_disk_space=low_space) from e

    def _setup(self, name: str, params: SandboxParams, archive) -> None:
        target_dir = self.target_dir(name)

        change_owner(target_dir, self.config.user)
        self._mirror(name)
        archive.discard()

        self.sandbox.initialize(name, target_dir, params)
        self._generate_machine_id(target_dir)
        self._verify_sandbox(name, target_dir)

        self.ide.notify(name)

    def _generate_machine_id(self, target_dir: Path) -> None:
        """Give the target its own machine id; failures are not fatal."""
        machine_id = target_dir / "etc" / "machine-id"
        cmd = [self.config.tool("machine_id"), f"--root={target_dir}"]
        try:
            if machine_id.is_file() or machine_id.is_symlink():
                machine_id.unlink()
            result = self.runner.run(cmd)
        except (OSError, SdkManageError) as e:
            logger.warning(f"Could not generate a machine id for {target_dir}: {e}")
            return
        if result.returncode != 0:
            logger.warning(
                f"Machine id generation for {target_dir} failed "
                f"with exit code {result.returncode}"
            )

    def _verify_sandbox(self, name: str, target_dir: Path) -> None:
        root = self.sandbox.target_root(name)
        if root is None or os.path.realpath(root) != os.path.realpath(target_dir):
            raise SandboxError(
                f"Target '{name}' is not a valid sandbox target "
                f"(configuration {self.sandbox.config_path(name)})"
            )

    def _discard(self, name: str) -> None:
        """Best-effort removal of everything belonging to a target."""
        steps = (
            ("sandbox configuration", lambda: self.sandbox.remove_config(name)),
            (
                "target directory",
                lambda: safe_rmtree(self.target_dir(name), require_prefix=self.config.storage_root),
            ),
            (
                "mirror directory",
                lambda: safe_rmtree(self.mirror_dir(name), require_prefix=self.config.mirror_root),
            ),
        )
        for what, step in steps:
            try:
                step()
            except (OSError, ValueError, FilesystemError, SdkManageError) as e:
                logger.warning(f"Could not remove {what} of '{name}': {e}")

    # ------------------------------------------------------------------
    # Synchronize / import
    # ------------------------------------------------------------------

    def _mirror(self, name: str) -> SyncResult:
        return self.sync_filter.mirror(self.target_dir(name), self.mirror_dir(name))

    def synchronize(self, name: str) -> SyncResult:
        """
        Refresh the host-visible mirror of a target.

        Raises:
            TargetNotInstalledError: If the target directory does not exist
        """
        validate_target_name(name)
        with self._lock(name):
            if not self.target_dir(name).is_dir():
                raise TargetNotInstalledError(name, f"{self.target_dir(name)} does not exist")
            return self._mirror(name)

    def import_target(self, name: str) -> SyncResult:
        """
        Copy the host-visible mirror back into target storage.

        Files present in storage but not in the mirror are deleted.

        Raises:
            TargetNotInstalledError: If the mirror directory does not exist
        """
        validate_target_name(name)
        with self._lock(name):
            mirror_dir = self.mirror_dir(name)
            if not mirror_dir.is_dir():
                raise TargetNotInstalledError(name, f"{mirror_dir} does not exist")
            return full_mirror_filter().mirror(mirror_dir, self.target_dir(name))

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove(self, name: str) -> int:
        """
        Remove a target.

        Returns:
            0 on success

        Raises:
            TargetNotInstalledError: If no sandbox configuration exists; nothing
                is deleted in that case
        """
        validate_target_name(name)
        with self._lock(name):
            self._require(name)
            self.sandbox.remove_config(name)
            for path, root in (
                (self.target_dir(name), self.config.storage_root),
                (self.mirror_dir(name), self.config.mirror_root),
            ):
                try:
                    safe_rmtree(path, require_prefix=root)
                except (OSError, FilesystemError) as e:
                    logger.warning(f"Could not remove {path}: {e}")

        self.ide.notify(name, deleted=True)
        logger.info(f"Target '{name}' removed")
        return 0

    # ------------------------------------------------------------------
    # Packages inside targets
    # ------------------------------------------------------------------

    def packages(self, name: str) -> PackageBackend:
        """
        Package backend running inside target ``name``.

        Raises:
            TargetNotInstalledError: If the target does not exist
        """
        validate_target_name(name)
        self._require(name)
        return self.target_packages(name)

    def upgradable(self, name: str) -> List[str]:
        """Names of packages with updates available inside a target."""
        return self.packages(name).list_updates()

    def refresh(self, names: Sequence[str]) -> int:
        """
        Refresh repository metadata of the given targets.

        All targets are processed; the first non-zero exit code is returned.
        """
        backends = [(name, self.packages(name)) for name in names]
        status = 0
        for name, backend in backends:
            logger.info(f"Refreshing target '{name}'")
            rc = backend.refresh()
            if rc != 0:
                logger.error(f"Refreshing target '{name}' failed with exit code {rc}")
                status = status or rc
        return status

    def refresh_all(self) -> int:
        return self.refresh(self.list_targets())

    def update(self, name: str) -> int:
        """Upgrade all packages of a target, then refresh its mirror."""
        rc = self.packages(name).dist_upgrade()
        if rc != 0:
            return rc
        self.synchronize(name)
        return 0
