"""Replacing the running installer executable with the latest release."""

import os
import platform
import stat
import subprocess
import sys
import threading
from concurrent.futures import Future, wait
from enum import Enum
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from .. import buildinfo
from ..errors import DownloadFailed, InstallerError, PermissionDenied, ReplaceFailed
from ..utils.logger import LoggerMixin
from .downloader import Downloader, discard
from .releases import FeedKind, ReleaseMetadata, ReleaseResolver, same_version

EXECUTABLE_MAGIC = {
    'Windows': (b'MZ',),
    'Linux': (b'\x7fELF',),
}


class UpdateState(Enum):
    """Self-update progress.

    A finished swap returns to ``UP_TO_DATE``; ``RELAUNCHING`` ends with the
    process exiting.
    """
    IDLE = "idle"
    CHECK_PENDING = "check_pending"
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    DOWNLOADING = "downloading"
    REPLACING = "replacing"
    RELAUNCHING = "relaunching"
    FAILED = "failed"


def running_executable(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Path of the frozen installer binary, or None when running from source."""
    environ = os.environ if environ is None else environ
    appimage = environ.get('APPIMAGE')
    if appimage:
        return Path(appimage)
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).resolve()
    return None


def is_executable_shaped(path: Path, system: str) -> bool:
    """Check a downloaded artifact is non-empty and starts like a native binary."""
    try:
        with open(path, 'rb') as f:
            head = f.read(4)
    except OSError:
        return False
    if not head:
        return False
    magics = EXECUTABLE_MAGIC.get(system)
    return magics is None or any(head.startswith(magic) for magic in magics)


class SelfUpdater(LoggerMixin):
    """Drives the installer's own update from check to relaunch.

    The rename onto the executable path is the only irreversible step and
    happens only once the new binary is fully on disk and verified.
    """

    def __init__(self, resolver: ReleaseResolver, current_tag: Optional[str] = None,
                 executable: Optional[Path] = None, system: Optional[str] = None,
                 downloader: Optional[Downloader] = None):
        """Initialize the updater.

        Args:
            resolver: Release resolver for the installer feed
            current_tag: Tag of the running build (defaults to the stamped build info)
            executable: Binary to replace (defaults to the running frozen executable)
            system: ``platform.system()`` value (defaults to the running OS)
            downloader: Artifact downloader (defaults to one on the resolver's session)
        """
        self.resolver = resolver
        self.current_tag = current_tag or buildinfo.INSTALLER_TAG
        self.executable = executable if executable is not None else running_executable()
        self.system = system or platform.system()
        self.downloader = downloader or Downloader(resolver.session)
        self.state = UpdateState.IDLE
        self.latest: Optional[ReleaseMetadata] = None
        self.failure_reason: Optional[str] = None
        self.check_error: Optional[InstallerError] = None
        self._lock = threading.Lock()

    def _set_state(self, state: UpdateState, reason: Optional[str] = None) -> None:
        self.logger.debug(f"Self-update: {self.state.value} -> {state.value}")
        self.state = state
        if state is UpdateState.FAILED:
            self.failure_reason = reason
            self.logger.error(f"Self-update failed: {reason}")

    @property
    def supports_in_place(self) -> bool:
        """Whether this build can swap its own binary.

        macOS ships an app bundle inside a zip, source checkouts have no
        binary, and dev builds have no meaningful tag to compare.
        """
        return (
            self.system != 'Darwin'
            and self.executable is not None
            and self.current_tag != buildinfo.DEV_TAG
        )

    def check(self) -> Future:
        """Start checking the installer feed; the future completes once."""
        self._set_state(UpdateState.CHECK_PENDING)
        future = self.resolver.check_async(FeedKind.INSTALLER)
        future.add_done_callback(self.record_check)
        return future

    def record_check(self, future: Future) -> None:
        """Apply a finished check. Idempotent; the first caller wins."""
        with self._lock:
            if self.state is not UpdateState.CHECK_PENDING:
                return
            try:
                latest = future.result()
            except InstallerError as e:
                self.check_error = e
                self.logger.warning(f"Installer update check failed: {e}")
                self._set_state(UpdateState.IDLE)
                return

            self.latest = latest
            self.check_error = None
            if same_version(self.current_tag, latest.tag):
                self._set_state(UpdateState.UP_TO_DATE)
            else:
                self._set_state(UpdateState.UPDATE_AVAILABLE)

    def check_now(self) -> Optional[ReleaseMetadata]:
        """Check the installer feed and wait for the answer.

        Raises:
            InstallerError: if the latest release could not be resolved
        """
        future = self.check()
        wait([future])
        self.record_check(future)
        if self.check_error is not None:
            raise self.check_error
        return self.latest

    def is_outdated(self) -> bool:
        return self.latest is not None and not same_version(self.current_tag, self.latest.tag)

    def can_update_self(self) -> bool:
        """True iff a newer installer exists and this platform can replace itself."""
        return self.is_outdated() and self.supports_in_place

    def manual_download_url(self) -> str:
        """Release page for platforms that must update by hand."""
        if self.latest is not None:
            return self.latest.page_url
        return self.resolver.feeds[FeedKind.INSTALLER].page_url

    def update_self(self) -> bool:
        """Download the latest installer and swap it in for the running one.

        Returns:
            True when the executable was replaced, False when already up to date

        Raises:
            DownloadFailed: if the new binary could not be fetched or verified
            ReplaceFailed: if the swap failed; the original binary is intact
            InstallerError: if the check fails or the platform cannot self-update
        """
        if self.latest is None:
            self.check_now()

        if not self.is_outdated():
            self._set_state(UpdateState.UP_TO_DATE)
            return False
        if not self.supports_in_place:
            raise InstallerError(f"Please download the new installer manually: {self.manual_download_url()}")

        executable = self.executable
        self._set_state(UpdateState.DOWNLOADING)
        try:
            tmp_path = self.downloader.fetch(
                self.latest.download_url, executable.parent,
                prefix=f".{executable.name}.update-", digest=self.latest.digest,
            )
        except (DownloadFailed, PermissionDenied) as e:
            self._set_state(UpdateState.FAILED, str(e))
            raise

        if not is_executable_shaped(tmp_path, self.system):
            discard(tmp_path)
            reason = f"{self.latest.asset_name} does not look like an executable"
            self._set_state(UpdateState.FAILED, reason)
            raise DownloadFailed(reason)

        self._set_state(UpdateState.REPLACING)
        try:
            self._replace(tmp_path, executable)
        except OSError as e:
            discard(tmp_path)
            self._set_state(UpdateState.FAILED, str(e))
            raise ReplaceFailed(f"Could not replace {executable}: {e}") from e

        self.logger.info(f"Updated installer {self.current_tag} -> {self.latest.tag}")
        self._set_state(UpdateState.UP_TO_DATE)
        return True

    def _replace(self, new_binary: Path, executable: Path) -> None:
        mode = stat.S_IMODE(os.stat(executable).st_mode)
        if self.system != 'Windows':
            mode |= stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
        os.chmod(new_binary, mode)

        if self.system != 'Windows':
            os.replace(new_binary, executable)
            return

        # A running .exe cannot be overwritten, but it can be renamed away
        parked = self._parked_path(executable)
        discard(parked)
        os.replace(executable, parked)
        try:
            os.replace(new_binary, executable)
        except OSError:
            os.replace(parked, executable)
            raise

    @staticmethod
    def _parked_path(executable: Path) -> Path:
        return executable.with_name(executable.name + '.old')

    def cleanup_stale_binary(self) -> None:
        """Remove the binary a previous Windows update moved aside."""
        if self.executable is not None:
            discard(self._parked_path(self.executable))

    def relaunch_self(self, argv: Optional[List[str]] = None,
                      popen: Callable[..., subprocess.Popen] = subprocess.Popen,
                      exit_process: Callable[[int], None] = sys.exit) -> None:
        """Start the updated executable detached, then exit this process.

        Raises:
            InstallerError: if the new process could not be started
        """
        if self.executable is None:
            raise InstallerError("Not running from an installer executable")

        argv = sys.argv if argv is None else argv
        self._set_state(UpdateState.RELAUNCHING)

        kwargs = {'close_fds': True}
        if self.system == 'Windows':
            kwargs['creationflags'] = (
                getattr(subprocess, 'DETACHED_PROCESS', 0x8) | getattr(subprocess, 'CREATE_NEW_PROCESS_GROUP', 0x200)
            )
        else:
            kwargs['start_new_session'] = True

        try:
            popen([str(self.executable), *argv[1:]], **kwargs)
        except OSError as e:
            self._set_state(UpdateState.FAILED, str(e))
            raise InstallerError(f"Could not restart the installer, please start it manually: {e}") from e

        exit_process(0)
