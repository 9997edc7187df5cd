"""Install, repair and uninstall command implementations."""

from ..errors import InstallerError
from ..utils.formatter import ProgressDisplay, get_color_formatter
from ..utils.logger import get_logger
from .common import open_session, report_error, select_install, warn_running_clients


def _run(args, action: str) -> int:
    logger = get_logger()
    colors = get_color_formatter()
    session = open_session(args)

    try:
        session.discover()
        selection = select_install(args, session)
        install = session.resolve(selection)
        warn_running_clients(install)

        progress = ProgressDisplay("Downloading Mushcord")
        try:
            if action == 'install':
                session.ensure_payload(progress)
                result = session.patch(selection)
            elif action == 'repair':
                result = session.repair(selection, progress)
            else:
                result = session.unpatch(selection)
        finally:
            progress.finish()

        verb = {'install': 'Patched', 'repair': 'Repaired', 'uninstall': 'Unpatched'}[action]
        logger.info(f"{verb} {result.path}")
        print(colors.success(f"{verb} {result.label}"))
        return 0

    except InstallerError as e:
        return report_error(e, session.settings.system)
    finally:
        session.close()


def execute_install(args) -> int:
    """Download Mushcord if needed and patch the selected install."""
    return _run(args, 'install')


def execute_repair(args) -> int:
    """Reinstall the latest Mushcord and re-apply the patch."""
    return _run(args, 'repair')


def execute_uninstall(args) -> int:
    """Restore the selected install's original entry point."""
    return _run(args, 'uninstall')
