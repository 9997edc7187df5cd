"""Helpers shared by the command implementations."""

from typing import Optional

from .. import constants
from ..core.locator import CustomPath, DiscoveredInstall, Selection
from ..core.session import InstallerSession
from ..core.validator import InstallationDescriptor
from ..errors import InstallerError, PermissionDenied, ScuffedInstall
from ..utils.formatter import get_color_formatter
from ..utils.logger import get_logger
from ..utils.process import running_clients


def open_session(args) -> InstallerSession:
    """Create the session a command works with."""
    session = InstallerSession()
    session.self_updater.cleanup_stale_binary()
    return session


def select_install(args, session: InstallerSession) -> Selection:
    """Pick the install a command acts on from ``--location`` or ``--branch``.

    With ``--branch auto`` the first discovered install wins in channel
    order, so a machine with only Canary still gets patched.

    Raises:
        InstallerError: if nothing matches
    """
    location = getattr(args, 'location', None)
    if location:
        return CustomPath(location)

    installs = session.installs
    if not installs:
        raise InstallerError("No Discord installs found, pass --location")

    branch = getattr(args, 'branch', 'auto') or 'auto'
    order = constants.CHANNELS if branch == 'auto' else (branch,)
    for channel in order:
        for index, install in enumerate(installs):
            if install.channel == channel:
                return DiscoveredInstall(index)

    if branch == 'auto':
        return DiscoveredInstall(0)
    raise InstallerError(f"No {branch} install found")


def warn_running_clients(install: InstallationDescriptor) -> None:
    clients = running_clients(install.path)
    if clients:
        names = ', '.join(sorted({client.name for client in clients}))
        print(get_color_formatter().warning(
            f"Warning: {names} is still running from {install.path}. Close it fully before continuing."
        ))


def report_error(error: InstallerError, system: Optional[str] = None) -> int:
    """Print an installer error with its remediation and return the exit code."""
    logger = get_logger()
    colors = get_color_formatter()

    logger.error(str(error))
    if isinstance(error, PermissionDenied):
        print(colors.error(error.remediation(system)))
    elif isinstance(error, ScuffedInstall):
        print(colors.error(str(error)))
        print(colors.info(f"Folder to clean up: {error.remediation_path}"))
    else:
        print(colors.error(f"Error: {error}"))
    return 1
