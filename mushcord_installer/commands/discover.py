"""List and status command implementations."""

from concurrent.futures import wait
from typing import Any, Dict, List

from ..core.session import StatusReport
from ..core.validator import InstallationDescriptor
from ..errors import InstallerError
from ..utils.formatter import get_output_formatter
from ..utils.logger import get_logger
from .common import open_session, report_error


def install_rows(installs: List[InstallationDescriptor]) -> List[Dict[str, Any]]:
    return [
        {
            'index': index,
            'channel': install.channel,
            'path': install.path,
            'version': install.version or '',
            'patched': install.patched,
            'openasar': install.open_asar,
        }
        for index, install in enumerate(installs)
    ]


def status_data(report: StatusReport) -> Dict[str, Any]:
    latest_addon = report.latest_addon
    latest_installer = report.latest_installer
    return {
        'data_dir': report.data_dir,
        'dev_install': report.dev_install,
        'installed_mushcord': report.installed_identifier or '(not installed)',
        'latest_mushcord': latest_addon.identifier if latest_addon else '',
        'mushcord_outdated': report.addon_outdated,
        'mushcord_check_error': report.addon_error,
        'installer_version': f"{report.installer_tag} ({report.installer_git_hash})",
        'latest_installer': latest_installer.tag if latest_installer else '',
        'installer_check_error': report.installer_error,
        'can_update_self': report.can_update_self,
        'manual_update_url': report.manual_update_url or '',
        'installs': len(report.installs),
    }


def execute_list(args) -> int:
    """Execute the list command."""
    logger = get_logger()
    session = open_session(args)
    try:
        installs = session.discover()
        logger.info(f"Discovered {len(installs)} installs")
        get_output_formatter().print_data(install_rows(installs))
        return 0
    finally:
        session.close()


def execute_status(args) -> int:
    """Execute the status command; waits for both release checks."""
    session = open_session(args)
    try:
        session.start()
        wait([session.addon_check, session.installer_check])
        report = session.status()

        formatter = get_output_formatter()
        if formatter.format_type == 'json':
            data = status_data(report)
            data['installs'] = install_rows(report.installs)
            formatter.print_data(data)
        else:
            formatter.print_data(status_data(report))
            if report.installs:
                print()
                formatter.print_data(install_rows(report.installs))
        return 0
    except InstallerError as e:
        return report_error(e)
    finally:
        session.close()
