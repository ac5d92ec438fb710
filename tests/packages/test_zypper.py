"""
Unit tests for the zypper package backend.
"""

import pytest

from sdkmanage.core.exceptions import PackageManagerError
from sdkmanage.packages.zypper import (
    ZYPPER_EXIT_INF_CAP_NOT_FOUND,
    ZypperBackend,
    parse_search_xml,
    parse_updates_xml,
)
from tests.fakes import RecordingRunner

SEARCH_XML = """<?xml version='1.0'?>
<stream>
<search-result version="0.0">
<solvable-list>
<solvable status="installed" name="Mer-SB2-armv7hl" kind="pattern" edition="0.1-1" repository="(System Packages)"/>
<solvable status="not-installed" name="Mer-SB2-armv7hl" kind="pattern" edition="0.2-1" repository="mer-tools"/>
<solvable status="not-installed" name="Mer-SB2-i486" kind="pattern" edition="0.2-1" repository="mer-tools"/>
</solvable-list>
</search-result>
</stream>
"""

UPDATES_XML = """<?xml version='1.0'?>
<stream>
<update-status version="0.6">
<update-list>
<update kind="package" name="qt5-qtbase" edition="5.6.3-1" arch="armv7hl"/>
<update kind="package" name="Mer-SB2-armv7hl" edition="0.2-1" arch="noarch"/>
</update-list>
</update-status>
</stream>
"""


class TestParsers:
    """Test parsing zypper XML output."""

    def test_parse_search(self):
        """Test one entry per name, preferring the installed one."""
        result = {info.name: info for info in parse_search_xml(SEARCH_XML)}

        assert set(result) == {"Mer-SB2-armv7hl", "Mer-SB2-i486"}
        assert result["Mer-SB2-armv7hl"].installed is True
        assert result["Mer-SB2-armv7hl"].version == "0.1-1"
        assert result["Mer-SB2-i486"].installed is False
        assert result["Mer-SB2-i486"].repository == "mer-tools"

    def test_parse_updates(self):
        """Test update names are extracted."""
        assert parse_updates_xml(UPDATES_XML) == ["qt5-qtbase", "Mer-SB2-armv7hl"]

    def test_parse_invalid_xml(self):
        """Test garbage output is a package manager error."""
        with pytest.raises(PackageManagerError):
            parse_search_xml("Loading repository data...")


class TestZypperBackend:
    """Test zypper command lines and exit code handling."""

    def test_search_command(self):
        """Test searches use XML output and the requested kind."""
        runner = RecordingRunner({"zypper": (0, SEARCH_XML)})

        found = ZypperBackend(runner).search("Mer-SB2-*", kind="pattern")

        assert runner.commands[0] == [
            "zypper", "--non-interactive", "--xmlout",
            "search", "--details", "-t", "pattern", "Mer-SB2-*",
        ]
        assert runner.calls[0]["capture"] is True
        assert len(found) == 2

    def test_search_without_pattern(self):
        """Test an empty pattern lists everything."""
        runner = RecordingRunner({"zypper": (0, "<stream/>")})

        ZypperBackend(runner).search("")

        assert runner.commands[0][-1] == "package"

    def test_search_no_matches(self):
        """Test zypper's 'nothing found' exit code means an empty result."""
        runner = RecordingRunner({"zypper": (ZYPPER_EXIT_INF_CAP_NOT_FOUND, "")})

        assert ZypperBackend(runner).search("nothing") == []

    def test_search_failure(self):
        """Test other failures raise with zypper's exit code."""
        runner = RecordingRunner({"zypper": (7, "")})

        with pytest.raises(PackageManagerError) as exc_info:
            ZypperBackend(runner).search("x")

        assert exc_info.value.exit_code == 7

    def test_find(self):
        """Test find returns the exact match only."""
        runner = RecordingRunner({"zypper": (0, SEARCH_XML)})
        backend = ZypperBackend(runner)

        assert backend.find("Mer-SB2-i486", kind="pattern").installed is False
        assert backend.find("Mer-SB2", kind="pattern") is None

    def test_install_returns_exit_code(self):
        """Test installs report zypper's exit code."""
        runner = RecordingRunner({"zypper": (8, "")})

        rc = ZypperBackend(runner).install(["Mer-SB2-i486"], kind="pattern")

        assert rc == 8
        assert runner.commands[0] == [
            "zypper", "--non-interactive", "install", "-t", "pattern", "Mer-SB2-i486",
        ]

    def test_remove(self):
        """Test package removal command."""
        runner = RecordingRunner()

        assert ZypperBackend(runner).remove(["qt5-qtbase-devel"]) == 0
        assert runner.commands[0][-4:] == ["remove", "-t", "package", "qt5-qtbase-devel"]

    def test_in_target_prefix_and_user(self):
        """Test in-target backends run zypper through sb2 as the user."""
        runner = RecordingRunner()
        backend = ZypperBackend(
            runner, prefix=["sb2", "-t", "alpha", "-m", "sdk-install", "-R"], user="mersdk"
        )

        backend.refresh()
        backend.dist_upgrade()

        assert runner.commands == [
            ["sb2", "-t", "alpha", "-m", "sdk-install", "-R", "zypper", "--non-interactive", "refresh"],
            ["sb2", "-t", "alpha", "-m", "sdk-install", "-R", "zypper", "--non-interactive", "dist-upgrade"],
        ]
        assert {call["user"] for call in runner.calls} == {"mersdk"}

    def test_list_updates(self):
        """Test pending updates are listed."""
        runner = RecordingRunner({"zypper": (0, UPDATES_XML)})

        assert ZypperBackend(runner).list_updates() == ["qt5-qtbase", "Mer-SB2-armv7hl"]
        assert runner.commands[0][-1] == "list-updates"
