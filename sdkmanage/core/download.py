"""
Target archive fetching.

Resolves a target source reference into a local archive file:

- ``file:///path/to/rootfs.tar.bz2`` or a plain existing path is used in
  place and never deleted afterwards,
- anything else is downloaded over HTTP(S) into a scratch directory.

A download smaller than the configured minimum size is rejected: servers
answering with an HTML error page or a truncated transfer must not be
mistaken for a sysroot archive. Downloads are not retried.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import requests
from requests.exceptions import RequestException

from sdkmanage.core.exceptions import DownloadFailedError
from sdkmanage.core.interfaces import ArchiveFetcher

logger = logging.getLogger(__name__)

MIN_ARCHIVE_SIZE = 10000


@dataclass
class FetchedArchive:
    """
    A target archive available on the local filesystem.

    Attributes:
        path: Local path of the archive
        downloaded: True if the file was downloaded and should be removed
            once the target is installed
    """

    path: Path
    downloaded: bool

    def discard(self) -> None:
        """Remove the archive if it was downloaded."""
        if self.downloaded and self.path.exists():
            logger.debug(f"Removing downloaded archive {self.path}")
            self.path.unlink()


def local_path_for(source: str) -> Optional[Path]:
    """
    Return the local file a source reference points to, if any.

    Args:
        source: URL or path

    Returns:
        Path for file:// URLs and existing plain paths, None for remote URLs

    Example:
        >>> local_path_for("file:///tmp/rootfs.tar.bz2")
        PosixPath('/tmp/rootfs.tar.bz2')
    """
    parsed = urlparse(source)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme == "" and source:
        return Path(source)
    return None


class UrlArchiveFetcher(ArchiveFetcher):
    """Fetch target archives from local files or HTTP(S) URLs."""

    def __init__(
        self,
        download_dir: Path,
        min_size: int = MIN_ARCHIVE_SIZE,
        timeout: int = 30,
    ):
        """
        Initialize archive fetcher.

        Args:
            download_dir: Directory receiving downloaded archives
            min_size: Minimum plausible archive size in bytes
            timeout: Request timeout in seconds
        """
        self.download_dir = Path(download_dir)
        self.min_size = min_size
        self.timeout = timeout

    def fetch(self, source: str, name: str) -> FetchedArchive:
        """
        Make the archive behind ``source`` available locally.

        Args:
            source: file:// URL, local path or HTTP(S) URL
            name: Target name, used to name the downloaded file

        Returns:
            FetchedArchive describing the local file

        Raises:
            DownloadFailedError: If the local file is missing, the download
                fails, or the downloaded file is implausibly small
        """
        local = local_path_for(source)
        if local is not None:
            if not local.is_file():
                raise DownloadFailedError(f"Archive not found: {local}")
            logger.debug(f"Using local archive {local}")
            return FetchedArchive(path=local, downloaded=False)

        destination = self.download_dir / self._archive_name(source, name)
        self._download(source, destination)

        size = destination.stat().st_size
        if size < self.min_size:
            destination.unlink()
            raise DownloadFailedError(
                f"Download of {source} failed: got {size} bytes, "
                f"expected at least {self.min_size}"
            )

        return FetchedArchive(path=destination, downloaded=True)

    def _archive_name(self, source: str, name: str) -> str:
        """Name of the local file for a download, keeping the archive suffix."""
        basename = Path(urlparse(source).path).name
        return f"{name}-{basename}" if basename else f"{name}.tar"

    def _download(self, url: str, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Downloading {url}")

        start_time = time.time()
        downloaded = 0
        try:
            response = requests.get(
                url, stream=True, timeout=self.timeout, allow_redirects=True
            )
            response.raise_for_status()

            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
                        downloaded += len(chunk)
        except (RequestException, OSError) as e:
            if destination.exists():
                destination.unlink()
            raise DownloadFailedError(f"Download of {url} failed: {e}") from e

        elapsed = time.time() - start_time
        logger.debug(f"Downloaded {downloaded} bytes in {elapsed:.1f}s to {destination}")
