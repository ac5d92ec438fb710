"""
Unit tests for toolchain management.
"""

import pytest

from sdkmanage.core.exceptions import (
    PackageManagerError,
    ToolchainAlreadyInstalledError,
    ToolchainInvalidError,
    ToolchainNotInstalledError,
)
from sdkmanage.toolchain.manager import ToolchainManager


@pytest.fixture
def manager(sdk_packages):
    sdk_packages.add("Mer-Devel-Tools", installed=True, kind="pattern")
    return ToolchainManager(sdk_packages)


class TestToolchainManager:
    """Test listing, installing and removing toolchains."""

    def test_list_only_toolchains(self, manager):
        """Test only patterns matching the toolchain glob are listed."""
        names = [(info.name, info.installed) for info in manager.list()]

        assert names == [("Mer-SB2-armv7hl", True), ("Mer-SB2-i486", False)]

    def test_is_toolchain(self, manager):
        """Test the toolchain glob."""
        assert manager.is_toolchain("Mer-SB2-aarch64")
        assert not manager.is_toolchain("qt5-qtbase")

    def test_install(self, manager, sdk_packages):
        """Test installing an available toolchain."""
        assert manager.install("Mer-SB2-i486") == 0
        assert ("install", ["Mer-SB2-i486"], "pattern") in sdk_packages.calls

    def test_install_already_installed(self, manager):
        """Test installing an installed toolchain fails with exit code 2."""
        with pytest.raises(ToolchainAlreadyInstalledError) as exc_info:
            manager.install("Mer-SB2-armv7hl")

        assert exc_info.value.exit_code == 2

    def test_install_unknown(self, manager):
        """Test installing an unknown toolchain fails with exit code 2."""
        with pytest.raises(ToolchainInvalidError):
            manager.install("Mer-SB2-sparc")

    def test_remove(self, manager, sdk_packages):
        """Test removing an installed toolchain."""
        assert manager.remove("Mer-SB2-armv7hl") == 0
        assert ("remove", ["Mer-SB2-armv7hl"], "pattern") in sdk_packages.calls

    def test_remove_not_installed(self, manager):
        """Test removing a toolchain that is not installed fails with exit code 2."""
        with pytest.raises(ToolchainNotInstalledError) as exc_info:
            manager.remove("Mer-SB2-i486")

        assert exc_info.value.exit_code == 2

    def test_ensure_installed_noop(self, manager, sdk_packages):
        """Test nothing is installed when the toolchain is present."""
        manager.ensure_installed("Mer-SB2-armv7hl")

        assert not [call for call in sdk_packages.calls if call[0] == "install"]

    def test_ensure_installed_failure(self, manager, sdk_packages):
        """Test a failing install carries zypper's exit code."""
        sdk_packages.install_rc = 4

        with pytest.raises(PackageManagerError) as exc_info:
            manager.ensure_installed("Mer-SB2-i486")

        assert exc_info.value.exit_code == 4
