"""One interactive installer run: discovery, background checks and user actions."""

from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .. import buildinfo
from ..config import InstallerSettings
from ..errors import InstallerError
from ..utils.logger import LoggerMixin
from .addon import AddonStore
from .downloader import Downloader, ProgressCallback, create_session
from .locator import CustomPathResult, InstallationLocator, Selection
from .openasar import OpenAsarEngine
from .patcher import PatchEngine
from .paths import PathOracle
from .releases import FeedKind, ReleaseMetadata, ReleaseResolver
from .selfupdate import SelfUpdater
from .validator import InstallationDescriptor


@dataclass
class StatusReport:
    """Everything a front end displays, read once after the checks complete."""
    installs: List[InstallationDescriptor]
    data_dir: Path
    dev_install: bool
    installed_identifier: str
    installer_tag: str
    installer_git_hash: str
    latest_addon: Optional[ReleaseMetadata] = None
    addon_error: Optional[InstallerError] = None
    latest_installer: Optional[ReleaseMetadata] = None
    installer_error: Optional[InstallerError] = None
    addon_outdated: bool = True
    can_update_self: bool = False
    manual_update_url: Optional[str] = None
    pending_checks: List[str] = field(default_factory=list)


def _settled(future: Optional[Future]):
    """(result, error) of a finished future, (None, None) while pending."""
    if future is None or not future.done():
        return None, None
    try:
        return future.result(), None
    except InstallerError as e:
        return None, e


class InstallerSession(LoggerMixin):
    """Wires the engines together for one run of the installer.

    Install descriptors live only until the next discovery pass, which runs
    at start-up and again after every change made through this session.
    """

    def __init__(self, settings: Optional[InstallerSettings] = None, http_session=None,
                 oracle: Optional[PathOracle] = None, resolver: Optional[ReleaseResolver] = None,
                 executable: Optional[Path] = None, openasar_url: Optional[str] = None):
        self.settings = settings or InstallerSettings.from_environment()
        http_session = http_session or create_session()

        self.resolver = resolver or ReleaseResolver(http_session, self.settings.request_timeout)
        downloader = Downloader(http_session, self.settings.download_timeout)

        self.locator = InstallationLocator(oracle or PathOracle(self.settings.system))
        self.patcher = PatchEngine(self.settings, self.locator.validator, self.locator.oracle)
        self.openasar = OpenAsarEngine(self.patcher, downloader, *([openasar_url] if openasar_url else []))
        self.addon = AddonStore(self.settings, self.resolver, downloader)
        self.self_updater = SelfUpdater(self.resolver, executable=executable,
                                        system=self.settings.system, downloader=downloader)

        self.installs: List[InstallationDescriptor] = []
        self.addon_check: Optional[Future] = None
        self.installer_check: Optional[Future] = None

    def start(self, on_check_complete: Optional[Callable[[FeedKind], None]] = None) -> None:
        """Discover installs and start both release checks in the background.

        Args:
            on_check_complete: Called once per finished check, from a worker
                thread; front ends use it to schedule a redraw
        """
        self.self_updater.cleanup_stale_binary()
        self.discover()

        self.addon_check = self.resolver.check_async(FeedKind.ADDON)
        self.installer_check = self.self_updater.check()

        if on_check_complete:
            self.addon_check.add_done_callback(lambda _: on_check_complete(FeedKind.ADDON))
            self.installer_check.add_done_callback(lambda _: on_check_complete(FeedKind.INSTALLER))

    def discover(self) -> List[InstallationDescriptor]:
        self.installs = self.locator.discover()
        return self.installs

    def validate_custom(self, path: str) -> CustomPathResult:
        result = self.locator.validate_custom(path)
        self.discover()
        return result

    def resolve(self, selection: Selection) -> InstallationDescriptor:
        return self.locator.resolve(selection, self.installs)

    def latest_addon(self) -> ReleaseMetadata:
        """Latest Mushcord release, waiting for the start-up check if needed."""
        if self.addon_check is None:
            self.addon_check = self.resolver.check_async(FeedKind.ADDON)
        return self.addon_check.result()

    def install_latest_builds(self, progress_callback: Optional[ProgressCallback] = None) -> Optional[ReleaseMetadata]:
        """Download the latest Mushcord payload (skipped for dev installs)."""
        if self.settings.dev_install:
            return None
        return self.addon.install_latest(self.latest_addon(), progress_callback)

    def ensure_payload(self, progress_callback: Optional[ProgressCallback] = None) -> None:
        """Download Mushcord unless an up to date payload is already present."""
        if self.settings.dev_install:
            return
        if self.addon.has_payload() and not self.addon.is_outdated(self.latest_addon()):
            return
        self.install_latest_builds(progress_callback)

    def patch(self, selection: Selection) -> InstallationDescriptor:
        install = self.patcher.patch(self.resolve(selection))
        self.discover()
        return install

    def unpatch(self, selection: Selection) -> InstallationDescriptor:
        install = self.patcher.unpatch(self.resolve(selection))
        self.discover()
        return install

    def repair(self, selection: Selection,
               progress_callback: Optional[ProgressCallback] = None) -> InstallationDescriptor:
        """Reinstall the latest Mushcord build, then patch."""
        install = self.resolve(selection)
        self.install_latest_builds(progress_callback)
        return self.patch_install(install)

    def patch_install(self, install: InstallationDescriptor) -> InstallationDescriptor:
        patched = self.patcher.patch(install)
        self.discover()
        return patched

    def install_open_asar(self, selection: Selection) -> InstallationDescriptor:
        install = self.openasar.install_open_asar(self.resolve(selection))
        self.discover()
        return install

    def uninstall_open_asar(self, selection: Selection) -> InstallationDescriptor:
        install = self.openasar.uninstall_open_asar(self.resolve(selection))
        self.discover()
        return install

    def toggle_open_asar(self, selection: Selection) -> InstallationDescriptor:
        install = self.openasar.toggle(self.resolve(selection))
        self.discover()
        return install

    def status(self) -> StatusReport:
        """Snapshot for the front end; pending checks are listed, not awaited."""
        latest_addon, addon_error = _settled(self.addon_check)
        latest_installer, installer_error = _settled(self.installer_check)
        if self.installer_check is not None and self.installer_check.done():
            self.self_updater.record_check(self.installer_check)
        installed = self.addon.installed_identifier()

        pending = []
        for kind, future in ((FeedKind.ADDON, self.addon_check), (FeedKind.INSTALLER, self.installer_check)):
            if future is not None and not future.done():
                pending.append(kind.value)

        updater = self.self_updater
        return StatusReport(
            installs=list(self.installs),
            data_dir=self.settings.data_dir,
            dev_install=self.settings.dev_install,
            installed_identifier=installed,
            installer_tag=updater.current_tag,
            installer_git_hash=buildinfo.INSTALLER_GIT_HASH,
            latest_addon=latest_addon,
            addon_error=addon_error,
            latest_installer=latest_installer,
            installer_error=installer_error,
            addon_outdated=self.addon.is_outdated(latest_addon) if latest_addon else not installed,
            can_update_self=updater.can_update_self(),
            manual_update_url=updater.manual_download_url() if updater.is_outdated() and not updater.supports_in_place else None,
            pending_checks=pending,
        )

    def close(self) -> None:
        self.resolver.shutdown()
