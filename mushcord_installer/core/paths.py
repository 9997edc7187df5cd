"""Conventional Discord install locations per operating system."""

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .. import constants
from ..config import user_home


@dataclass(frozen=True)
class Candidate:
    """A directory that may hold a Discord install of the given channel."""
    path: Path
    channel: str


def channel_from_name(name: str) -> str:
    """Infer the release channel from a folder, bundle or package name."""
    lowered = name.lower()
    if 'ptb' in lowered:
        return constants.PTB
    if 'canary' in lowered:
        return constants.CANARY
    if 'development' in lowered:
        return constants.DEVELOPMENT
    return constants.STABLE


def flatpak_files_dir(bundle_id: str) -> Path:
    """Relative path of the client inside a Flatpak app directory.

    ``com.discordapp.DiscordCanary`` ships its files under
    ``current/active/files/discord-canary``.
    """
    name = bundle_id[len(constants.FLATPAK_PREFIX):]
    discord_name = (name[:7] + '-' + name[7:]).lower().rstrip('-')
    return Path(bundle_id) / 'current' / 'active' / 'files' / discord_name


class PathOracle:
    """Enumerates candidate install directories without touching the disk.

    Every input that varies between machines is injectable so the result is a
    pure function of OS identity and environment.
    """

    def __init__(self, system: Optional[str] = None, environ: Optional[Mapping[str, str]] = None,
                 home: Optional[Path] = None, fs_root: Path = Path('/')):
        """Initialize the oracle.

        Args:
            system: ``platform.system()`` value (defaults to the running OS)
            environ: Environment mapping (defaults to ``os.environ``)
            home: Home directory of the target user (defaults to the sudo-aware home)
            fs_root: Prefix for absolute system locations such as ``/opt``
        """
        self.system = system or platform.system()
        self.environ = os.environ if environ is None else environ
        self.home = home or user_home(self.system, self.environ)
        self.fs_root = fs_root

    def _system_path(self, absolute: str) -> Path:
        return self.fs_root / absolute.lstrip('/')

    def roots(self) -> List[Path]:
        """Ordered directories that contain per-channel install folders."""
        if self.system == 'Windows':
            local_appdata = self.environ.get('LOCALAPPDATA')
            return [Path(local_appdata) if local_appdata else self.home / 'AppData' / 'Local']

        if self.system == 'Darwin':
            return [self._system_path('/Applications'), self.home / 'Applications']

        return [
            self._system_path('/usr/share'),
            self._system_path('/usr/lib64'),
            self._system_path('/opt'),
            self.home / '.local' / 'share',
            self.home / '.dvm',
            self._system_path('/var/lib/flatpak/app'),
            self.home / '.local' / 'share' / 'flatpak' / 'app',
        ]

    def names_by_channel(self) -> Dict[str, List[str]]:
        """Recognized folder or bundle names for each channel on this OS."""
        if self.system == 'Windows':
            return {channel: [name] for channel, name in constants.WINDOWS_DISCORD_NAMES.items()}

        if self.system == 'Darwin':
            return {channel: [name] for channel, name in constants.MACOS_DISCORD_NAMES.items()}

        names: Dict[str, List[str]] = {channel: [] for channel in constants.CHANNELS}
        for name in constants.LINUX_DISCORD_NAMES:
            names[channel_from_name(name)].append(name)
        return names

    def candidates(self) -> List[Candidate]:
        """Every root and name combination, in a stable order."""
        result = []
        names = self.names_by_channel()

        for root in self.roots():
            for channel in constants.CHANNELS:
                for name in names[channel]:
                    if name.startswith(constants.FLATPAK_PREFIX):
                        result.append(Candidate(root / flatpak_files_dir(name), channel))
                    else:
                        result.append(Candidate(root / name, channel))

        return result

    def misplaced_squirrel_root(self) -> Optional[Path]:
        """Folder where a machine-wide Squirrel install misplaces Discord on Windows."""
        if self.system != 'Windows':
            return None

        program_data = self.environ.get('PROGRAMDATA')
        username = self.environ.get('USERNAME')
        if not program_data or not username:
            return None
        return Path(program_data) / username

    def misplaced_squirrel_dirs(self) -> List[Path]:
        """Per-channel folders that, when present, make every Windows install scuffed."""
        root = self.misplaced_squirrel_root()
        if root is None:
            return []
        return [root / name for name in constants.WINDOWS_DISCORD_NAMES.values()]
