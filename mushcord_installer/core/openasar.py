"""OpenAsar: swapping Discord's client-core bundle for the open-source rewrite.

Independent of the Mushcord loader. The core bundle is ``app.asar`` on a
stock install and ``_app.asar`` on a patched one; its original is kept
verbatim as ``app.asar.original`` either way.
"""

import os
from typing import Optional

from .. import constants
from ..errors import BackupMissing, DownloadFailed, InstallerError, PermissionDenied
from ..utils.logger import LoggerMixin
from .downloader import Downloader, discard
from .markers import is_open_asar
from .patcher import PatchEngine
from .validator import InstallationDescriptor


class OpenAsarEngine(LoggerMixin):
    """Installs and removes OpenAsar without touching the Mushcord loader."""

    def __init__(self, patcher: PatchEngine, downloader: Optional[Downloader] = None,
                 download_url: str = constants.OPENASAR_DOWNLOAD_URL):
        self.patcher = patcher
        self.downloader = downloader or Downloader()
        self.download_url = download_url

    def install_open_asar(self, install: InstallationDescriptor) -> InstallationDescriptor:
        """Replace the core bundle with OpenAsar. No-op when already installed.

        Raises:
            DownloadFailed: if OpenAsar could not be fetched or is not OpenAsar
            PermissionDenied: if the resource folder is not writable
            ScuffedInstall, InvalidLocation: if re-validation fails
        """
        current = self.patcher.refresh(install)
        if current.open_asar:
            self.logger.info(f"OpenAsar already installed on {current.path}")
            return current

        core = current.core_asar
        backup = current.openasar_backup
        if not core.is_file():
            raise BackupMissing(current.resources_path)

        tmp_path = self.downloader.fetch(self.download_url, current.resources_path, prefix='openasar-')
        moved = False
        try:
            if not is_open_asar(tmp_path):
                raise DownloadFailed(f"{self.download_url} did not contain OpenAsar")
            os.replace(core, backup)
            moved = True
            os.replace(tmp_path, core)
        except PermissionError as e:
            self._undo(backup, core, moved)
            raise PermissionDenied(e.filename or current.resources_path, current.path) from e
        except OSError as e:
            self._undo(backup, core, moved)
            raise InstallerError(f"Failed to install OpenAsar on {current.path}: {e}") from e
        finally:
            discard(tmp_path)

        self.logger.info(f"Installed OpenAsar on {current.path}")
        return self.patcher.validator.validate(current.path, current.channel)

    def uninstall_open_asar(self, install: InstallationDescriptor) -> InstallationDescriptor:
        """Put the original core bundle back. No-op when OpenAsar is not installed.

        Raises:
            BackupMissing: if the original core bundle was not kept
            PermissionDenied: if the resource folder is not writable
        """
        current = self.patcher.refresh(install)
        if not current.open_asar:
            self.logger.info(f"OpenAsar not installed on {current.path}, nothing to do")
            return current

        if not current.openasar_backup.is_file():
            raise BackupMissing(current.resources_path)

        try:
            os.replace(current.openasar_backup, current.core_asar)
        except PermissionError as e:
            raise PermissionDenied(e.filename or current.resources_path, current.path) from e
        except OSError as e:
            raise InstallerError(f"Failed to uninstall OpenAsar from {current.path}: {e}") from e

        self.logger.info(f"Uninstalled OpenAsar from {current.path}")
        return self.patcher.validator.validate(current.path, current.channel)

    def toggle(self, install: InstallationDescriptor) -> InstallationDescriptor:
        current = self.patcher.refresh(install)
        if current.open_asar:
            return self.uninstall_open_asar(current)
        return self.install_open_asar(current)

    def _undo(self, backup, core, moved: bool) -> None:
        if not moved:
            return
        try:
            os.replace(backup, core)
        except OSError as e:
            self.logger.error(f"Could not move {backup} back to {core}: {e}")
