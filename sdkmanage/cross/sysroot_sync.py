"""
Filtered mirroring of target sysroots.

The IDE on the host only needs a small part of a target: headers, QML
import trees, a few data files and one shared library it inspects to
detect the target architecture. This module mirrors exactly that subset
into the host-visible directory.

Paths are matched against an ordered list of include/exclude rules; the
first matching rule decides and paths matching no rule are excluded.
Pattern syntax follows rsync filter rules:

- a leading ``/`` anchors the pattern at the root of the tree,
  otherwise it may match any trailing run of path components,
- a trailing ``/`` only matches directories,
- ``*`` matches within one path component, ``**`` across components,
  ``?`` matches one character.

Mirroring converges: destination paths that are no longer produced from
the source are deleted, unchanged files (same size and mtime) are not
copied again, so running it twice leaves the mirror untouched.
"""

import logging
import os
import re
import shutil
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from sdkmanage.core.filesystem import FilesystemError

logger = logging.getLogger(__name__)

INCLUDE = "include"
EXCLUDE = "exclude"


def _glob_to_regex(glob: str) -> str:
    """Translate the body of a filter pattern into a regular expression."""
    parts = []
    i = 0
    while i < len(glob):
        c = glob[i]
        if c == "*":
            if glob.startswith("**", i):
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif c == "?":
            parts.append("[^/]")
        elif c == "[":
            end = glob.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(c))
            else:
                body = glob[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                i = end
        else:
            parts.append(re.escape(c))
        i += 1
    return "".join(parts)


@dataclass(frozen=True)
class SyncRule:
    """
    One include or exclude filter rule.

    Attributes:
        action: INCLUDE or EXCLUDE
        pattern: rsync-style glob (see module docstring)
    """

    action: str
    pattern: str
    _regex: re.Pattern = field(init=False, repr=False, compare=False)
    _dir_only: bool = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.action not in (INCLUDE, EXCLUDE):
            raise ValueError(f"Unknown rule action: {self.action}")
        if not self.pattern:
            raise ValueError("Rule pattern cannot be empty")

        body = self.pattern
        dir_only = body.endswith("/")
        body = body.rstrip("/")
        anchored = body.startswith("/")
        body = body.lstrip("/")

        prefix = "^" if anchored else "(?:^|.*/)"
        object.__setattr__(self, "_regex", re.compile(prefix + _glob_to_regex(body) + "$"))
        object.__setattr__(self, "_dir_only", dir_only)

    @classmethod
    def include(cls, pattern: str) -> "SyncRule":
        return cls(INCLUDE, pattern)

    @classmethod
    def exclude(cls, pattern: str) -> "SyncRule":
        return cls(EXCLUDE, pattern)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        """
        Check whether the rule applies to a path.

        Args:
            rel_path: Path relative to the tree root, '/'-separated, no
                leading slash
            is_dir: Whether the path is a directory
        """
        if self._dir_only and not is_dir:
            return False
        return self._regex.match(rel_path) is not None


# Highest priority first.
SYSROOT_RULES: Tuple[SyncRule, ...] = (
    # Keep the tree shape even where all contents are filtered out.
    SyncRule.include("*/"),
    # Inspected by the IDE to detect the target architecture.
    SyncRule.include("/usr/lib/libQt5Core.so.5"),
    SyncRule.exclude("*.so"),
    SyncRule.exclude("*.so.*"),
    SyncRule.include("/usr/lib/qt5/qml/**"),
    SyncRule.include("/usr/lib/qt4/imports/**"),
    SyncRule.include("/usr/include/**"),
    SyncRule.include("/usr/share/qt5/**"),
    SyncRule.exclude("*"),
)

# Required by the IDE integration whatever the rules produce.
SYSROOT_PLACEHOLDER_EXECUTABLES: Tuple[str, ...] = ("usr/bin/qmake",)
SYSROOT_PLACEHOLDER_DIRS: Tuple[str, ...] = ("usr/lib/qt5/plugins",)


@dataclass
class SyncIssue:
    """A path that could not be mirrored or cleaned up."""

    path: str
    message: str


@dataclass
class SyncResult:
    """
    Outcome of a mirror run.

    Attributes:
        copied: Files written to the destination
        unchanged: Files already up to date
        deleted: Destination entries removed
        errors: Entries skipped because of errors
    """

    copied: int = 0
    unchanged: int = 0
    deleted: int = 0
    errors: List[SyncIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class SyncFilter:
    """
    Mirror a directory tree through an ordered rule list.

    Example:
        >>> sync = sysroot_filter()
        >>> result = sync.mirror(Path('/srv/mer/targets/alpha'),
        ...                      Path('/host_targets/alpha'))
        >>> result.ok
        True
    """

    def __init__(
        self,
        rules: Sequence[SyncRule],
        placeholder_executables: Iterable[str] = (),
        placeholder_dirs: Iterable[str] = (),
    ):
        """
        Initialize the filter.

        Args:
            rules: Rules, highest priority first
            placeholder_executables: Relative paths of empty executables
                to create in the destination
            placeholder_dirs: Relative paths of directories to create in the
                destination
        """
        self.rules = tuple(rules)
        self.placeholder_executables = tuple(p.strip("/") for p in placeholder_executables)
        self.placeholder_dirs = tuple(p.strip("/") for p in placeholder_dirs)

    def decide(self, rel_path: str, is_dir: bool) -> bool:
        """
        Return True if ``rel_path`` belongs in the mirror.

        The first matching rule wins; no match means exclude.
        """
        for rule in self.rules:
            if rule.matches(rel_path, is_dir):
                return rule.action == INCLUDE
        return False

    def protected_paths(self) -> FrozenSet[str]:
        """Placeholder paths and their parent directories."""
        protected: Set[str] = set()
        for rel in self.placeholder_executables + self.placeholder_dirs:
            parts = rel.split("/")
            for i in range(1, len(parts) + 1):
                protected.add("/".join(parts[:i]))
        return frozenset(protected)

    def mirror(self, source: Path, destination: Path) -> SyncResult:
        """
        Make ``destination`` the filtered image of ``source``.

        Args:
            source: Source tree
            destination: Mirror directory (created if missing)

        Returns:
            SyncResult with counters and the skipped entries

        Raises:
            FilesystemError: If the source is not a directory
        """
        source = Path(source)
        destination = Path(destination)
        if not source.is_dir():
            raise FilesystemError(f"Source directory does not exist: {source}")

        logger.debug(f"Mirroring {source} -> {destination}")
        destination.mkdir(parents=True, exist_ok=True)

        result = SyncResult()
        keep: Set[str] = set()
        self._copy_tree(
            source, destination, "", keep, result, frozenset({os.path.realpath(source)})
        )
        self._delete_extraneous(destination, keep | self.protected_paths(), result)
        self._ensure_placeholders(destination)

        logger.info(
            f"Synchronized {destination}: {result.copied} copied, "
            f"{result.unchanged} unchanged, {result.deleted} deleted"
        )
        if result.errors:
            logger.warning(f"{len(result.errors)} entries could not be synchronized")
        return result

    def _skip(self, result: SyncResult, rel: str, message: str) -> None:
        logger.warning(f"Skipping {rel}: {message}")
        result.errors.append(SyncIssue(rel, message))

    def _copy_tree(
        self,
        src_dir: Path,
        dst_dir: Path,
        rel: str,
        keep: Set[str],
        result: SyncResult,
        ancestors: FrozenSet[str],
    ) -> None:
        try:
            entries = sorted(os.scandir(src_dir), key=lambda e: e.name)
        except OSError as e:
            self._skip(result, rel or ".", str(e))
            return

        for entry in entries:
            child_rel = f"{rel}/{entry.name}" if rel else entry.name
            src_path = Path(entry.path)

            # Symlinks are followed: host shares cannot represent them.
            try:
                is_dir = entry.is_dir()
            except OSError:
                is_dir = False
            if not self.decide(child_rel, is_dir):
                continue

            try:
                st = src_path.stat()
            except OSError as e:
                self._skip(result, child_rel, str(e))
                continue

            if stat.S_ISDIR(st.st_mode):
                real = os.path.realpath(src_path)
                if real in ancestors:
                    self._skip(result, child_rel, "symlink loop")
                    continue
                dst_child = dst_dir / entry.name
                if not self._ensure_dir(dst_child, child_rel, result):
                    continue
                keep.add(child_rel)
                self._copy_tree(
                    src_path, dst_child, child_rel, keep, result, ancestors | {real}
                )
            elif stat.S_ISREG(st.st_mode):
                keep.add(child_rel)
                self._copy_file(src_path, dst_dir / entry.name, st, child_rel, result)
            else:
                logger.debug(f"Ignoring special file {child_rel}")

    def _ensure_dir(self, path: Path, rel: str, result: SyncResult) -> bool:
        try:
            if path.is_symlink() or (path.exists() and not path.is_dir()):
                path.unlink()
            path.mkdir(exist_ok=True)
        except OSError as e:
            self._skip(result, rel, str(e))
            return False
        return True

    def _copy_file(
        self, src: Path, dst: Path, src_stat: os.stat_result, rel: str, result: SyncResult
    ) -> None:
        try:
            dst_stat: Optional[os.stat_result] = os.lstat(dst)
        except FileNotFoundError:
            dst_stat = None
        except OSError as e:
            self._skip(result, rel, str(e))
            return

        try:
            if dst_stat is not None:
                if (
                    stat.S_ISREG(dst_stat.st_mode)
                    and dst_stat.st_size == src_stat.st_size
                    and int(dst_stat.st_mtime) == int(src_stat.st_mtime)
                ):
                    result.unchanged += 1
                    return
                if stat.S_ISDIR(dst_stat.st_mode):
                    shutil.rmtree(dst)
                else:
                    dst.unlink()

            shutil.copy2(src, dst)
            result.copied += 1
        except OSError as e:
            self._skip(result, rel, str(e))
            try:
                dst.unlink()
            except OSError:
                pass

    def _delete_extraneous(self, destination: Path, keep: Set[str], result: SyncResult) -> None:
        for dirpath, dirnames, filenames in os.walk(destination, topdown=False):
            rel_dir = os.path.relpath(dirpath, destination)
            for name in filenames + dirnames:
                rel = name if rel_dir == "." else f"{rel_dir}/{name}"
                if rel in keep:
                    continue
                path = Path(dirpath) / name
                try:
                    if path.is_dir() and not path.is_symlink():
                        shutil.rmtree(path)
                    else:
                        path.unlink()
                    result.deleted += 1
                    logger.debug(f"Deleted {rel}")
                except OSError as e:
                    self._skip(result, rel, f"cannot delete: {e}")

    def _ensure_placeholders(self, destination: Path) -> None:
        for rel in self.placeholder_dirs:
            path = destination / rel
            if path.is_symlink() or (path.exists() and not path.is_dir()):
                path.unlink()
            path.mkdir(parents=True, exist_ok=True)

        for rel in self.placeholder_executables:
            path = destination / rel
            if path.exists() or path.is_symlink():
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
            path.chmod(0o755)


def sysroot_filter() -> SyncFilter:
    """Filter producing the host-visible subset of a target."""
    return SyncFilter(
        SYSROOT_RULES,
        placeholder_executables=SYSROOT_PLACEHOLDER_EXECUTABLES,
        placeholder_dirs=SYSROOT_PLACEHOLDER_DIRS,
    )


def full_mirror_filter() -> SyncFilter:
    """Filter copying everything, used to import a mirror back into storage."""
    return SyncFilter((SyncRule.include("*"),))
