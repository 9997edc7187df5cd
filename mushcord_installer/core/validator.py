"""Recognition of Discord installations on disk."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from packaging.version import InvalidVersion, Version

from .. import constants
from ..errors import InvalidLocation, ScuffedInstall
from .markers import is_loader_asar, is_open_asar
from .paths import channel_from_name

logger = logging.getLogger(__name__)

SQUIRREL_PREFIX = 'app-'


@dataclass(frozen=True)
class InstallationDescriptor:
    """One Discord install as it looked during a single discovery pass.

    Never reuse a descriptor across user actions: the client's own updater
    can revert or relocate things at any time. Re-validate instead.
    """
    path: Path
    channel: str
    resources_path: Path
    version: Optional[str]
    patched: bool
    open_asar: bool

    @property
    def app_asar(self) -> Path:
        return self.resources_path / constants.APP_ASAR

    @property
    def original_asar(self) -> Path:
        return self.resources_path / constants.ORIGINAL_ASAR

    @property
    def core_asar(self) -> Path:
        """The client-core bundle, wherever the loader patch moved it."""
        return self.original_asar if self.patched else self.app_asar

    @property
    def openasar_backup(self) -> Path:
        return self.resources_path / constants.OPENASAR_BACKUP

    @property
    def label(self) -> str:
        text = f"{self.channel.title()} - {self.path}"
        if self.patched:
            text += " [PATCHED]"
        return text


def version_key(version: str) -> Tuple[int, Any]:
    """Sort key for version folder names; parseable versions sort above the rest."""
    try:
        return 1, Version(version)
    except InvalidVersion:
        return 0, tuple(int(part) for part in re.findall(r'\d+', version))


def _has_bundle(folder: Path) -> bool:
    return (folder / constants.APP_ASAR).is_file() or (folder / constants.ORIGINAL_ASAR).is_file()


def _squirrel_versions(root: Path) -> List[Tuple[str, Path]]:
    versions = []
    try:
        entries = list(os.scandir(root))
    except OSError:
        return versions

    for entry in entries:
        if entry.name.startswith(SQUIRREL_PREFIX) and entry.is_dir():
            resources = Path(entry.path) / 'resources'
            if _has_bundle(resources):
                versions.append((entry.name[len(SQUIRREL_PREFIX):], resources))
    return versions


def _looks_executable(entry: os.DirEntry) -> bool:
    name = entry.name.lower()
    if name == 'update.exe' or (name.startswith('discord') and name.endswith('.exe')):
        return True
    return name.startswith('discord') and entry.is_file() and os.access(entry.path, os.X_OK)


class InstallValidator:
    """Decides whether a directory is a Discord install and in which state."""

    def find_resources(self, root: Path) -> Optional[Tuple[Path, Optional[str]]]:
        """Locate the resource folder the client currently loads.

        Args:
            root: Candidate install directory

        Returns:
            Tuple of (resources folder, version or None), or None when no
            recognizable layout exists at the conventional depth
        """
        versions = _squirrel_versions(root)
        if versions:
            # Version order, not mtime: old app-* folders linger after updates
            version, resources = max(versions, key=lambda item: version_key(item[0]))
            return resources, version

        for resources in (root / 'resources', root / 'Contents' / 'Resources', root):
            if _has_bundle(resources):
                return resources, None

        return None

    def is_displaced(self, root: Path) -> bool:
        """Check for an executable at ``root`` whose layout sits one level too deep."""
        try:
            entries = list(os.scandir(root))
        except OSError:
            return False

        if not any(_looks_executable(entry) for entry in entries):
            return False

        for entry in entries:
            if not entry.is_dir():
                continue
            nested = Path(entry.path)
            if _squirrel_versions(nested) or _has_bundle(nested / 'resources'):
                return True
        return False

    def infer_channel(self, path: Path) -> str:
        """Channel label from the nearest ancestor that names a Discord build."""
        for part in (path, *list(path.parents)[:4]):
            if 'discord' in part.name.lower():
                return channel_from_name(part.name)
        return constants.UNKNOWN

    def validate(self, path: Union[str, Path], expected_channel: Optional[str] = None) -> InstallationDescriptor:
        """Validate a directory and describe the install it holds.

        Args:
            path: Install root to check
            expected_channel: Channel label to assign; inferred when None

        Returns:
            Descriptor reflecting the on-disk state right now

        Raises:
            InvalidLocation: if the directory is not a Discord install
            ScuffedInstall: if the install exists but its layout is displaced
        """
        root = Path(path).expanduser()
        if not root.is_dir():
            raise InvalidLocation(root, "directory does not exist")

        found = self.find_resources(root)
        if found is None:
            if self.is_displaced(root):
                logger.debug(f"Displaced Discord layout under {root}")
                raise ScuffedInstall(root)
            raise InvalidLocation(root)

        resources, version = found
        app_asar = resources / constants.APP_ASAR
        original_asar = resources / constants.ORIGINAL_ASAR

        patched = is_loader_asar(app_asar)
        core_asar = original_asar if patched else app_asar

        return InstallationDescriptor(
            path=root,
            channel=expected_channel or self.infer_channel(root),
            resources_path=resources,
            version=version,
            patched=patched,
            open_asar=is_open_asar(core_asar),
        )
