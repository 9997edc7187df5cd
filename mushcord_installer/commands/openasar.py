"""OpenAsar command implementations."""

from ..errors import InstallerError
from ..utils.formatter import get_color_formatter
from .common import open_session, report_error, select_install, warn_running_clients


def _run(args, install_it: bool) -> int:
    session = open_session(args)
    try:
        session.discover()
        selection = select_install(args, session)
        warn_running_clients(session.resolve(selection))

        if install_it:
            result = session.install_open_asar(selection)
            message = f"OpenAsar installed on {result.path}"
        else:
            result = session.uninstall_open_asar(selection)
            message = f"OpenAsar removed from {result.path}"

        print(get_color_formatter().success(message))
        return 0
    except InstallerError as e:
        return report_error(e, session.settings.system)
    finally:
        session.close()


def execute_install(args) -> int:
    return _run(args, True)


def execute_uninstall(args) -> int:
    return _run(args, False)
