"""Streaming downloads into a temporary file next to their final location."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

import requests

from .. import constants
from ..errors import DownloadFailed, PermissionDenied
from ..utils.hasher import ArtifactHasher
from ..utils.logger import LoggerMixin

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def create_session() -> requests.Session:
    """HTTP session carrying the installer's User-Agent."""
    session = requests.Session()
    session.headers['User-Agent'] = constants.USER_AGENT
    return session


def discard(path: Path) -> None:
    """Remove a leftover temporary file, logging instead of masking the real error."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary file {path}: {e}")


class Downloader(LoggerMixin):
    """Downloads artifacts completely or not at all.

    The temporary file lives in the destination directory so the caller can
    move it into place with an atomic ``os.replace``.
    """

    def __init__(self, session=None, timeout: float = constants.DOWNLOAD_TIMEOUT,
                 chunk_size: int = 64 * 1024, hasher: Optional[ArtifactHasher] = None):
        self.session = session or create_session()
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.hasher = hasher or ArtifactHasher()

    def fetch(self, url: str, destination_dir: Path, prefix: str,
              digest: Optional[str] = None, progress_callback: Optional[ProgressCallback] = None) -> Path:
        """Download ``url`` into a fresh temporary file.

        Args:
            url: Artifact URL
            destination_dir: Directory the artifact will finally live in
            prefix: Temporary file name prefix
            digest: Optional ``sha256:<hex>`` digest to verify against
            progress_callback: Called with (downloaded, total) bytes

        Returns:
            Path of the fully written temporary file; the caller owns it

        Raises:
            DownloadFailed: on transport errors, bad status, truncation or digest mismatch
            PermissionDenied: if the destination directory is not writable
        """
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=prefix, suffix='.part', dir=str(destination_dir))
        except PermissionError as e:
            raise PermissionDenied(destination_dir) from e
        except OSError as e:
            raise DownloadFailed(f"Could not create a temporary file in {destination_dir}: {e}") from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, 'wb') as out:
                self._stream(url, out, progress_callback)

            if not self.hasher.matches_digest(tmp_path, digest):
                raise DownloadFailed(f"Checksum mismatch for {url}")
        except Exception:
            discard(tmp_path)
            raise

        return tmp_path

    def _stream(self, url: str, out, progress_callback: Optional[ProgressCallback]) -> None:
        self.logger.info(f"Downloading {url}")
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise DownloadFailed(f"Could not download {url}: {e}") from e

        try:
            if response.status_code >= 400:
                raise DownloadFailed(f"Could not download {url}: HTTP {response.status_code}")

            total = int(response.headers.get('content-length') or 0)
            downloaded = 0
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if not chunk:
                    continue
                out.write(chunk)
                downloaded += len(chunk)
                if progress_callback:
                    progress_callback(downloaded, total)
        except requests.RequestException as e:
            raise DownloadFailed(f"Download of {url} was interrupted: {e}") from e
        except OSError as e:
            raise DownloadFailed(f"Could not write download of {url}: {e}") from e
        finally:
            response.close()

        if downloaded == 0:
            raise DownloadFailed(f"Download of {url} was empty")
        if total and downloaded != total:
            raise DownloadFailed(f"Download of {url} was truncated ({downloaded} of {total} bytes)")

        self.logger.debug(f"Downloaded {downloaded} bytes from {url}")
