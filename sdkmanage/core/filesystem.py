"""
File system utilities for sdk-manage.

This module provides the file operations the target store is built from:
- Archive extraction (tar with any compression, zip)
- Safe deletion restricted to a storage root
- Free space queries and ownership transfer
"""

import errno
import logging
import os
import shutil
import sys
import tarfile
import zipfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


# ============================================================================
# Error Handling
# ============================================================================


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not recognized."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains paths escaping the destination directory."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check whether ``path`` is located inside ``parent``.

    Example:
        >>> is_relative_to(Path('/srv/targets/a'), Path('/srv/targets'))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def is_out_of_space(exc: BaseException) -> bool:
    """
    Check whether an exception (or anything in its cause chain) is ENOSPC.

    Args:
        exc: Exception raised by an extraction or copy

    Returns:
        True if the failure was caused by a full filesystem
    """
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, OSError) and current.errno == errno.ENOSPC:
            return True
        current = current.__cause__ or current.__context__
    return False


def free_space(path: Union[str, Path]) -> int:
    """
    Return the free space in bytes of the filesystem holding ``path``.

    The nearest existing ancestor is queried when ``path`` does not exist.
    """
    path = Path(path)
    while not path.exists() and path != path.parent:
        path = path.parent
    return shutil.disk_usage(path).free


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Reject archive members that would be written outside ``destination``.

    Raises:
        InsecureArchiveError: On absolute paths or '..' traversal
    """
    member = Path(path.lstrip("/"))
    target = (destination / member).resolve()
    if not is_relative_to(target, destination.resolve()):
        raise InsecureArchiveError(f"Archive member escapes destination: {path}")


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract an archive to a destination directory.

    Zip archives are recognized by their suffix; everything else is opened
    as a tar archive with transparent decompression (gzip, bzip2, xz), so
    downloaded files do not need a meaningful name.

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to

    Raises:
        UnsupportedArchiveFormat: If the file is neither zip nor tar
        InsecureArchiveError: If archive contains malicious paths
        ArchiveExtractionError: If extraction fails

    Example:
        >>> extract_archive('rootfs.tar.bz2', '/srv/mer/targets/alpha')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)

    try:
        if archive_path.name.lower().endswith(".zip"):
            _extract_zip(archive_path, destination)
        else:
            _extract_tar(archive_path, destination)
    except (InsecureArchiveError, UnsupportedArchiveFormat):
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.namelist()
        for member in members:
            _validate_archive_path(member, destination)
        zf.extractall(destination)


def _extract_tar(archive_path: Path, destination: Path) -> None:
    """Extract a tar archive with any supported compression."""
    try:
        tar = tarfile.open(archive_path, "r:*")
    except tarfile.ReadError as e:
        raise UnsupportedArchiveFormat(
            f"Not a tar or zip archive: {archive_path.name}"
        ) from e

    with tar:
        for member in tar.getmembers():
            _validate_archive_path(member.name, destination)

        # Sysroots carry absolute symlinks (/usr/lib/libfoo.so -> /lib/...),
        # which the "data" filter refuses.
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="tar")
        else:
            tar.extractall(destination)


# ============================================================================
# Safe File Operations
# ============================================================================


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> bool:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be strictly under this directory

    Returns:
        True if something was removed, False if the path did not exist

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/srv/mer/targets/alpha', require_prefix='/srv/mer/targets')
    """
    path = Path(os.path.abspath(path))

    if require_prefix is not None:
        prefix = Path(os.path.abspath(require_prefix))
        if path == prefix or not is_relative_to(path, prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{prefix}'"
            )

    if path.is_symlink() or path.is_file():
        path.unlink()
        return True

    if not path.exists():
        return False

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e
    return True


def change_owner(path: Union[str, Path], user: str) -> None:
    """
    Give ``path`` to ``user`` and the user's primary group.

    Args:
        path: File or directory (not recursive)
        user: Account name

    Raises:
        FilesystemError: If the user is unknown or chown fails
    """
    import pwd

    try:
        entry = pwd.getpwnam(user)
    except KeyError:
        raise FilesystemError(f"Unknown user: {user}")

    try:
        os.chown(path, entry.pw_uid, entry.pw_gid)
    except OSError as e:
        raise FilesystemError(f"Failed to change owner of '{path}' to {user}: {e}") from e


__all__ = [
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "is_relative_to",
    "is_out_of_space",
    "free_space",
    "extract_archive",
    "safe_rmtree",
    "change_owner",
]
