"""The Mushcord payload in the user's data directory."""

import os
from pathlib import Path
from typing import Optional

from ..config import InstallerSettings
from ..errors import InstallerError, PermissionDenied
from ..utils.hasher import ArtifactHasher
from ..utils.logger import LoggerMixin
from .downloader import Downloader, ProgressCallback, discard
from .releases import FeedKind, ReleaseMetadata, ReleaseResolver, is_outdated


class AddonStore(LoggerMixin):
    """Owns ``mushcord.asar`` and the marker recording which release it is.

    Every query reads the disk; nothing is remembered between calls.
    """

    def __init__(self, settings: InstallerSettings, resolver: ReleaseResolver,
                 downloader: Optional[Downloader] = None, hasher: Optional[ArtifactHasher] = None):
        self.settings = settings
        self.resolver = resolver
        self.hasher = hasher or ArtifactHasher()
        self.downloader = downloader or Downloader(resolver.session, settings.download_timeout, hasher=self.hasher)

    @property
    def payload_path(self) -> Path:
        return self.settings.payload_path

    def has_payload(self) -> bool:
        return self.payload_path.is_file()

    def _marker(self) -> Optional[dict]:
        if not self.has_payload():
            return None
        return self.hasher.load_marker(self.settings.marker_path)

    def installed_identifier(self) -> str:
        """Commit hash (or tag) of the installed payload, empty if unknown."""
        marker = self._marker()
        if not marker:
            return ""
        return marker.get('commit') or marker.get('version') or ""

    def is_outdated(self, latest: ReleaseMetadata) -> bool:
        marker = self._marker()
        # Releases resolved from the release page carry a tag but no commit
        if marker and latest.commit is None and marker.get('version'):
            return is_outdated(marker['version'], latest)
        return is_outdated(self.installed_identifier(), latest)

    def install_latest(self, latest: Optional[ReleaseMetadata] = None,
                       progress_callback: Optional[ProgressCallback] = None) -> Optional[ReleaseMetadata]:
        """Download the latest Mushcord build into the data directory.

        Dev installs manage the payload themselves and are left alone.

        Args:
            latest: Already resolved release; resolved now when None
            progress_callback: Called with (downloaded, total) bytes

        Returns:
            The release that was installed, or None for dev installs

        Raises:
            InstallerError: resolution, download or permission failures
        """
        if self.settings.dev_install:
            self.logger.info("Dev install, not downloading Mushcord")
            return None

        latest = latest or self.resolver.resolve_latest(FeedKind.ADDON)
        data_dir = self.settings.data_dir

        tmp_path = self.downloader.fetch(
            latest.download_url, data_dir, prefix='mushcord-', digest=latest.digest,
            progress_callback=progress_callback,
        )
        try:
            os.replace(tmp_path, self.payload_path)
            self.hasher.save_marker(
                self.settings.marker_path, latest.tag, latest.commit,
                self.hasher.calculate_file_hash(self.payload_path),
            )
        except PermissionError as e:
            discard(tmp_path)
            raise PermissionDenied(data_dir) from e
        except OSError as e:
            discard(tmp_path)
            raise InstallerError(f"Failed to install Mushcord to {data_dir}: {e}") from e

        self._hand_back_to_sudo_user(self.payload_path, self.settings.marker_path)
        self.logger.info(f"Installed Mushcord {latest.tag} to {self.payload_path}")
        return latest

    def _hand_back_to_sudo_user(self, *paths: Path) -> None:
        # Files written as root under sudo must stay usable by the real user
        uid = os.environ.get('SUDO_UID')
        gid = os.environ.get('SUDO_GID')
        if self.settings.system != 'Linux' or not uid or not gid or not hasattr(os, 'chown'):
            return
        for path in (self.settings.data_dir, *paths):
            try:
                os.chown(path, int(uid), int(gid))
            except OSError as e:
                self.logger.warning(f"Could not hand {path} back to uid {uid}: {e}")
