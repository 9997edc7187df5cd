"""Self-update command implementation."""

from ..errors import InstallerError
from ..utils.formatter import get_color_formatter
from ..utils.logger import get_logger
from .common import open_session, report_error


def execute(args) -> int:
    """Replace this installer with its latest release, then restart it."""
    logger = get_logger()
    colors = get_color_formatter()
    session = open_session(args)
    updater = session.self_updater

    try:
        if not updater.supports_in_place:
            updater.check_now()
            if updater.is_outdated():
                print(colors.warning(
                    f"Installer {updater.latest.tag} is available. Download it from {updater.manual_download_url()}"
                ))
            else:
                print(colors.success(f"Installer {updater.current_tag} is up to date"))
            return 0

        if not updater.update_self():
            print(colors.success(f"Installer {updater.current_tag} is up to date"))
            return 0

        print(colors.success(f"Updated installer to {updater.latest.tag}"))
        if args.no_relaunch:
            return 0

        logger.info("Restarting the updated installer")
        print(colors.info("Restarting..."))
        updater.relaunch_self()
        return 0
    except InstallerError as e:
        return report_error(e, session.settings.system)
    finally:
        session.close()
