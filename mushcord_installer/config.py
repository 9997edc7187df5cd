"""Runtime settings resolved from the environment."""

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from . import constants


def user_home(system: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Path:
    """Home directory of the user the installer acts for.

    Under ``sudo`` on Linux that is the invoking user, not root, so the
    payload lands where that user's Discord will look for it.
    """
    system = system or platform.system()
    environ = os.environ if environ is None else environ

    sudo_user = environ.get('SUDO_USER')
    if system == 'Linux' and sudo_user and sudo_user != 'root':
        import pwd
        try:
            return Path(pwd.getpwnam(sudo_user).pw_dir)
        except KeyError:
            pass

    home = environ.get('HOME') if system != 'Windows' else environ.get('USERPROFILE')
    return Path(home) if home else Path.home()


def default_base_dir(system: Optional[str] = None, environ: Optional[Mapping[str, str]] = None,
                     home: Optional[Path] = None) -> Path:
    """Parent directory of the data directory for the given platform."""
    system = system or platform.system()
    environ = os.environ if environ is None else environ

    override = environ.get(constants.USER_DATA_DIR_ENV)
    if override:
        return Path(override)

    home = home or user_home(system, environ)

    if system == 'Windows':
        appdata = environ.get('APPDATA')
        return Path(appdata) if appdata else home / 'AppData' / 'Roaming'
    if system == 'Darwin':
        return home / 'Library' / 'Application Support'

    xdg_config = environ.get('XDG_CONFIG_HOME')
    if xdg_config and not environ.get('SUDO_USER'):
        return Path(xdg_config)
    return home / '.config'


@dataclass(frozen=True)
class InstallerSettings:
    """Settings shared by every component of one installer run."""
    system: str
    data_dir: Path
    dev_install: bool = False
    request_timeout: float = constants.REQUEST_TIMEOUT
    download_timeout: float = constants.DOWNLOAD_TIMEOUT
    log_file: Optional[Path] = None

    @property
    def payload_path(self) -> Path:
        """Downloaded Mushcord asar."""
        return self.data_dir / constants.ASAR_NAME

    @property
    def marker_path(self) -> Path:
        """Installed-version marker."""
        return self.data_dir / constants.INSTALLED_MARKER_NAME

    @classmethod
    def from_environment(cls, system: Optional[str] = None,
                         environ: Optional[Mapping[str, str]] = None) -> 'InstallerSettings':
        """Resolve settings for the running process.

        Args:
            system: ``platform.system()`` value (defaults to the running OS)
            environ: Environment mapping (defaults to ``os.environ``)
        """
        system = system or platform.system()
        environ = os.environ if environ is None else environ

        data_dir = default_base_dir(system, environ) / constants.DATA_DIR_NAME
        return cls(
            system=system,
            data_dir=data_dir,
            dev_install=environ.get(constants.DEV_INSTALL_ENV) == '1',
            log_file=data_dir / 'installer.log',
        )
