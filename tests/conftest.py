"""
Pytest configuration and shared fixtures for sdk-manage tests.
"""

import io
import os
import pwd
import tarfile
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest

from sdkmanage.core.config import SdkConfig
from sdkmanage.core.context import SdkContext
from sdkmanage.core.download import UrlArchiveFetcher
from sdkmanage.core.locking import TargetLockManager
from sdkmanage.cross.targets import TargetStore
from sdkmanage.sdk.host import HostIntegration
from sdkmanage.toolchain.manager import ToolchainManager
from tests.fakes import FakePackageBackend, FakeSandbox, RecordingNotifier, RecordingRunner


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def current_user() -> str:
    """Account name of the user running the tests."""
    return pwd.getpwuid(os.getuid()).pw_name


@pytest.fixture
def sdk_config(temp_dir: Path, current_user: str) -> SdkConfig:
    """Configuration with every root inside the temporary directory."""
    return SdkConfig(
        user=current_user,
        storage_root=temp_dir / "srv" / "targets",
        mirror_root=temp_dir / "host_targets",
        sandbox_config_root=temp_dir / "scratchbox2",
        download_dir=temp_dir / "downloads",
        lock_dir=temp_dir / "locks",
        ide_targets_xml=temp_dir / "host_targets" / "targets.xml",
        os_release=temp_dir / "os-release",
        low_space_threshold=0,
    )


# Typical sysroot content: (relative path, file content or None for a
# symlink target given in SYSROOT_LINKS).
SYSROOT_FILES: Dict[str, bytes] = {
    "usr/include/stdio.h": b"/* stdio */\n",
    "usr/include/QtCore/qglobal.h": b"/* qglobal */\n",
    "usr/lib/libQt5Core.so.5.6.2": b"\x7fELF core",
    "usr/lib/libfoo.so.1.0": b"\x7fELF foo",
    "usr/lib/qt5/qml/QtQuick/qmldir": b"module QtQuick\n",
    "usr/lib/qt4/imports/Qt/labs/qmldir": b"module Qt.labs\n",
    "usr/share/qt5/mkspecs/linux-g++/qmake.conf": b"QMAKE_CC = gcc\n",
    "usr/share/doc/readme": b"not mirrored\n",
    "usr/bin/bash": b"\x7fELF bash",
    "etc/machine-id": b"0123456789abcdef0123456789abcdef\n",
}
SYSROOT_LINKS: Dict[str, str] = {
    "usr/lib/libQt5Core.so.5": "libQt5Core.so.5.6.2",
    "usr/lib/libfoo.so": "/usr/lib/libfoo.so.1.0",
}


@pytest.fixture
def make_sysroot() -> Callable[[Path], Path]:
    """Return a function populating a directory with a small sysroot."""

    def _make(root: Path) -> Path:
        for rel, content in SYSROOT_FILES.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        for rel, target in SYSROOT_LINKS.items():
            os.symlink(target, root / rel)
        return root

    return _make


@pytest.fixture
def rootfs_archive(temp_dir: Path) -> Path:
    """A gzipped tar archive holding the sysroot of make_sysroot."""
    archive = temp_dir / "rootfs.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        for rel, content in SYSROOT_FILES.items():
            info = tarfile.TarInfo(rel)
            info.size = len(content)
            info.mtime = 1500000000
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
        for rel, target in SYSROOT_LINKS.items():
            info = tarfile.TarInfo(rel)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return archive


# ============================================================================
# Target Store Fixtures
# ============================================================================


@pytest.fixture
def sdk_packages() -> FakePackageBackend:
    """SDK package backend offering two toolchains, one installed."""
    backend = FakePackageBackend()
    backend.add("Mer-SB2-armv7hl", installed=True, kind="pattern")
    backend.add("Mer-SB2-i486", installed=False, kind="pattern")
    return backend


@pytest.fixture
def sandbox(sdk_config: SdkConfig) -> FakeSandbox:
    return FakeSandbox(sdk_config.sandbox_config_root)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def target_backends() -> Dict[str, FakePackageBackend]:
    """Package backends of the targets, created on first use."""
    return {}


@pytest.fixture
def store(
    sdk_config, sdk_packages, sandbox, notifier, runner, target_backends
) -> TargetStore:
    """TargetStore wired to fakes and the temporary directory."""

    def target_packages(name):
        return target_backends.setdefault(name, FakePackageBackend())

    return TargetStore(
        sdk_config,
        toolchains=ToolchainManager(sdk_packages, pattern=sdk_config.toolchain_pattern),
        sandbox=sandbox,
        fetcher=UrlArchiveFetcher(sdk_config.download_dir, min_size=sdk_config.min_archive_size),
        ide=notifier,
        target_packages=target_packages,
        runner=runner,
        locks=TargetLockManager(sdk_config.lock_dir, timeout=5),
    )


@pytest.fixture
def sdk_context(sdk_config, sdk_packages, store, runner) -> SdkContext:
    """Complete context built from fakes."""
    return SdkContext(
        config=sdk_config,
        packages=sdk_packages,
        toolchains=store.toolchains,
        targets=store,
        host=HostIntegration(sdk_config.os_release, runner=runner),
    )


@pytest.fixture
def installed_target(store, rootfs_archive) -> str:
    """Name of a target installed from rootfs_archive."""
    store.install("alpha", "Mer-SB2-armv7hl", str(rootfs_archive))
    return "alpha"
