"""
Unit tests for filtered sysroot mirroring.
"""

import os
import stat
from pathlib import Path

import pytest

from sdkmanage.core.filesystem import FilesystemError
from sdkmanage.cross.sysroot_sync import (
    SyncFilter,
    SyncRule,
    full_mirror_filter,
    sysroot_filter,
)


def tree(root: Path):
    """All paths below root, '/'-separated, directories with a trailing '/'."""
    paths = set()
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)
        prefix = "" if rel_dir == "." else rel_dir + "/"
        paths.update(prefix + d + "/" for d in dirnames)
        paths.update(prefix + f for f in filenames)
    return paths


def snapshot(root: Path):
    """Content, size and mtime of every file below root."""
    result = {}
    for rel in tree(root):
        path = root / rel
        if path.is_file():
            st = path.stat()
            result[rel] = (path.read_bytes(), st.st_size, st.st_mtime_ns, stat.S_IMODE(st.st_mode))
        else:
            result[rel] = None
    return result


class TestSyncRule:
    """Test rule pattern matching."""

    def test_unanchored_pattern_matches_any_depth(self):
        """Test patterns without leading slash match trailing components."""
        rule = SyncRule.exclude("*.so")
        assert rule.matches("libfoo.so", False)
        assert rule.matches("usr/lib/libfoo.so", False)
        assert not rule.matches("usr/lib/libfoo.so.1", False)

    def test_anchored_pattern(self):
        """Test leading slash anchors at the tree root."""
        rule = SyncRule.include("/usr/lib/libQt5Core.so.5")
        assert rule.matches("usr/lib/libQt5Core.so.5", False)
        assert not rule.matches("opt/usr/lib/libQt5Core.so.5", False)

    def test_directory_only_pattern(self):
        """Test trailing slash only matches directories."""
        rule = SyncRule.include("*/")
        assert rule.matches("usr", True)
        assert rule.matches("usr/lib", True)
        assert not rule.matches("usr/bin/bash", False)

    def test_single_star_does_not_cross_slash(self):
        """Test '*' stays within one component and '**' crosses them."""
        assert not SyncRule.include("/usr/include/*").matches("usr/include/QtCore/q.h", False)
        assert SyncRule.include("/usr/include/**").matches("usr/include/QtCore/q.h", False)

    def test_invalid_action(self):
        """Test unknown action is rejected."""
        with pytest.raises(ValueError):
            SyncRule("maybe", "*")


class TestSyncFilterDecide:
    """Test rule evaluation order of the sysroot filter."""

    @pytest.mark.parametrize(
        "rel_path,is_dir,expected",
        [
            ("usr", True, True),
            ("usr/share/doc", True, True),
            ("usr/lib/libQt5Core.so.5", False, True),
            ("usr/lib/libQt5Core.so.5.6.2", False, False),
            ("usr/lib/qt5/qml/QtQuick/libqtquick2plugin.so", False, False),
            ("usr/lib/qt5/qml/QtQuick/qmldir", False, True),
            ("usr/lib/qt4/imports/Qt/labs/qmldir", False, True),
            ("usr/include/stdio.h", False, True),
            ("usr/share/qt5/mkspecs/linux-g++/qmake.conf", False, True),
            ("usr/share/doc/readme", False, False),
            ("usr/bin/bash", False, False),
            ("etc/machine-id", False, False),
        ],
    )
    def test_decide(self, rel_path, is_dir, expected):
        """Test first matching rule wins, default exclude."""
        assert sysroot_filter().decide(rel_path, is_dir) is expected

    def test_no_rules_excludes_everything(self):
        """Test a path matching no rule is excluded."""
        assert SyncFilter([]).decide("usr/include/stdio.h", False) is False


class TestSysrootMirror:
    """Test mirroring a sysroot into the host-visible directory."""

    @pytest.fixture
    def source(self, temp_dir, make_sysroot):
        return make_sysroot(temp_dir / "source")

    def test_mirror_contents(self, source, temp_dir):
        """Test only the host subset and the placeholders are mirrored."""
        dest = temp_dir / "mirror"
        result = sysroot_filter().mirror(source, dest)

        files = {p for p in tree(dest) if not p.endswith("/")}
        assert files == {
            "usr/include/stdio.h",
            "usr/include/QtCore/qglobal.h",
            "usr/lib/libQt5Core.so.5",
            "usr/lib/qt5/qml/QtQuick/qmldir",
            "usr/lib/qt4/imports/Qt/labs/qmldir",
            "usr/share/qt5/mkspecs/linux-g++/qmake.conf",
            "usr/bin/qmake",
        }
        assert result.ok
        assert result.copied == 6

    def test_directories_are_kept(self, source, temp_dir):
        """Test directory structure is mirrored even when empty."""
        dest = temp_dir / "mirror"
        sysroot_filter().mirror(source, dest)

        assert (dest / "usr" / "share" / "doc").is_dir()
        assert (dest / "etc").is_dir()
        assert (dest / "usr" / "lib" / "qt5" / "plugins").is_dir()

    def test_symlinks_are_followed(self, source, temp_dir):
        """Test symlinked files are mirrored as regular files."""
        dest = temp_dir / "mirror"
        sysroot_filter().mirror(source, dest)

        core = dest / "usr" / "lib" / "libQt5Core.so.5"
        assert not core.is_symlink()
        assert core.read_bytes() == b"\x7fELF core"

    def test_placeholder_qmake_is_empty_executable(self, source, temp_dir):
        """Test the qmake placeholder is an empty file with mode 0755."""
        dest = temp_dir / "mirror"
        sysroot_filter().mirror(source, dest)

        qmake = dest / "usr" / "bin" / "qmake"
        assert qmake.read_bytes() == b""
        assert stat.S_IMODE(qmake.stat().st_mode) == 0o755

    def test_mirror_is_subset_of_source(self, source, temp_dir):
        """Test every mirrored path exists in the source, placeholders aside."""
        dest = temp_dir / "mirror"
        sysroot_filter().mirror(source, dest)

        placeholders = {"usr/bin/qmake", "usr/lib/qt5/plugins/"}
        for rel in tree(dest) - placeholders:
            assert (source / rel.rstrip("/")).exists(), rel

    def test_second_run_is_idempotent(self, source, temp_dir):
        """Test re-running on an unchanged source leaves the mirror untouched."""
        dest = temp_dir / "mirror"
        sync = sysroot_filter()
        sync.mirror(source, dest)
        before = snapshot(dest)

        result = sync.mirror(source, dest)

        assert snapshot(dest) == before
        assert result.copied == 0
        assert result.deleted == 0
        assert result.unchanged == 6

    def test_preserves_mtime(self, source, temp_dir):
        """Test copied files keep the source modification time."""
        header = source / "usr" / "include" / "stdio.h"
        os.utime(header, (1400000000, 1400000000))
        dest = temp_dir / "mirror"

        sysroot_filter().mirror(source, dest)

        assert int((dest / "usr" / "include" / "stdio.h").stat().st_mtime) == 1400000000

    def test_changed_file_is_copied_again(self, source, temp_dir):
        """Test a modified source file replaces the mirrored copy."""
        dest = temp_dir / "mirror"
        sync = sysroot_filter()
        sync.mirror(source, dest)

        header = source / "usr" / "include" / "stdio.h"
        header.write_bytes(b"/* stdio, version 2 */\n")
        result = sync.mirror(source, dest)

        assert (dest / "usr" / "include" / "stdio.h").read_bytes() == b"/* stdio, version 2 */\n"
        assert result.copied == 1

    def test_extraneous_entries_are_deleted(self, source, temp_dir):
        """Test files no longer produced from the source are removed."""
        dest = temp_dir / "mirror"
        sync = sysroot_filter()
        sync.mirror(source, dest)

        (source / "usr" / "include" / "stdio.h").unlink()
        stale_dir = dest / "usr" / "include" / "stale"
        stale_dir.mkdir()
        (stale_dir / "old.h").write_text("old")
        (dest / "usr" / "share" / "doc" / "leftover").write_text("x")

        result = sync.mirror(source, dest)

        assert not (dest / "usr" / "include" / "stdio.h").exists()
        assert not stale_dir.exists()
        assert not (dest / "usr" / "share" / "doc" / "leftover").exists()
        assert result.deleted >= 3

    def test_existing_placeholder_is_not_overwritten(self, source, temp_dir):
        """Test a qmake already present in the mirror is left alone."""
        dest = temp_dir / "mirror"
        qmake = dest / "usr" / "bin" / "qmake"
        qmake.parent.mkdir(parents=True)
        qmake.write_text("#!/bin/sh\n")

        sysroot_filter().mirror(source, dest)

        assert qmake.read_text() == "#!/bin/sh\n"

    def test_dangling_symlink_is_reported(self, source, temp_dir):
        """Test an unreadable included entry is skipped and reported."""
        os.symlink("missing.h", source / "usr" / "include" / "dangling.h")
        dest = temp_dir / "mirror"

        result = sysroot_filter().mirror(source, dest)

        assert not result.ok
        assert [issue.path for issue in result.errors] == ["usr/include/dangling.h"]
        assert (dest / "usr" / "include" / "stdio.h").exists()

    def test_symlink_loop_is_reported(self, source, temp_dir):
        """Test a directory symlink pointing to an ancestor is not descended."""
        os.symlink("..", source / "usr" / "include" / "loop")
        dest = temp_dir / "mirror"

        result = sysroot_filter().mirror(source, dest)

        assert "usr/include/loop" in [issue.path for issue in result.errors]
        assert not (dest / "usr" / "include" / "loop").exists()

    def test_missing_source(self, temp_dir):
        """Test mirroring a missing source raises FilesystemError."""
        with pytest.raises(FilesystemError):
            sysroot_filter().mirror(temp_dir / "missing", temp_dir / "mirror")


class TestFullMirror:
    """Test the include-everything filter used for imports."""

    def test_copies_everything_without_placeholders(self, temp_dir, make_sysroot):
        """Test all files are mirrored and no placeholders are added."""
        source = make_sysroot(temp_dir / "source")
        os.unlink(source / "usr" / "lib" / "libfoo.so")
        dest = temp_dir / "dest"

        result = full_mirror_filter().mirror(source, dest)

        assert result.ok
        assert (dest / "usr" / "share" / "doc" / "readme").exists()
        assert (dest / "etc" / "machine-id").exists()
        assert not (dest / "usr" / "bin" / "qmake").exists()

    def test_deletes_files_missing_from_source(self, temp_dir):
        """Test destination-only files are removed."""
        source = temp_dir / "source"
        (source / "a").mkdir(parents=True)
        (source / "a" / "keep.txt").write_text("keep")
        dest = temp_dir / "dest"
        (dest / "a").mkdir(parents=True)
        (dest / "a" / "drop.txt").write_text("drop")

        full_mirror_filter().mirror(source, dest)

        assert (dest / "a" / "keep.txt").read_text() == "keep"
        assert not (dest / "a" / "drop.txt").exists()
