"""Patching Discord's entry point so it loads Mushcord, and undoing it.

Patching moves the client's ``app.asar`` verbatim to ``_app.asar`` and puts a
small loader asar in its place. Unpatching moves the original back, so the
restored file is byte for byte what Discord shipped.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from .. import constants
from ..config import InstallerSettings
from ..errors import AddonMissing, BackupMissing, InstallerError, InvalidLocation, PermissionDenied, ScuffedInstall
from ..utils.logger import LoggerMixin
from . import asar
from .downloader import discard
from .markers import LOADER_MARKER
from .paths import PathOracle
from .validator import InstallationDescriptor, InstallValidator

LOADER_TEMPLATE = """{marker}
const fs = require("fs");
const path = require("path");

const addon = {addon};

if (fs.existsSync(addon)) {{
    // Mushcord hooks Electron, then boots _app.asar itself
    require(addon);
}} else {{
    require(path.join(__dirname, "..", "{original}"));
}}
"""

LOADER_PACKAGE = {"name": "discord", "main": "index.js"}


def build_loader(payload_path: Path) -> bytes:
    """Loader asar that boots Mushcord when present and stock Discord otherwise."""
    script = LOADER_TEMPLATE.format(
        marker=LOADER_MARKER,
        addon=json.dumps(str(payload_path)),
        original=constants.ORIGINAL_ASAR,
    )
    return asar.pack({
        'index.js': script.encode('utf-8'),
        'package.json': json.dumps(LOADER_PACKAGE).encode('utf-8'),
    })


def write_atomic(target: Path, content: bytes) -> None:
    """Write ``content`` to ``target`` through a temporary sibling and a rename."""
    fd, tmp_name = tempfile.mkstemp(prefix='.mushcord-', suffix='.tmp', dir=str(target.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(content)
        os.replace(tmp_path, target)
    except Exception:
        discard(tmp_path)
        raise


class PatchEngine(LoggerMixin):
    """Applies and removes the Mushcord loader on one install at a time.

    Not safe for concurrent use on the same install; each call re-validates
    the install first so it never acts on a stale layout.
    """

    def __init__(self, settings: InstallerSettings, validator: Optional[InstallValidator] = None,
                 oracle: Optional[PathOracle] = None):
        self.settings = settings
        self.validator = validator or InstallValidator()
        self.oracle = oracle or PathOracle(settings.system)

    def refresh(self, install: InstallationDescriptor) -> InstallationDescriptor:
        """Re-validate an install against the disk as it is now.

        Raises:
            ScuffedInstall: if the install became displaced, or Discord was
                misplaced machine-wide by a Squirrel install on Windows
            InvalidLocation: if the install is gone
        """
        for misplaced in self.oracle.misplaced_squirrel_dirs():
            if misplaced.is_dir():
                raise ScuffedInstall(install.path, self.oracle.misplaced_squirrel_root())

        return self.validator.validate(install.path, install.channel)

    def is_scuffed(self, install: InstallationDescriptor) -> bool:
        try:
            self.refresh(install)
        except ScuffedInstall:
            return True
        except InvalidLocation:
            return False
        return False

    def patch(self, install: InstallationDescriptor) -> InstallationDescriptor:
        """Make the install load Mushcord. Safe to repeat.

        Returns:
            Fresh descriptor of the patched install

        Raises:
            AddonMissing: if the payload has not been downloaded yet
            BackupMissing: if already patched but the original bundle is gone
            PermissionDenied: if the resource folder is not writable
            ScuffedInstall, InvalidLocation: if re-validation fails
        """
        current = self.refresh(install)

        if not self.settings.payload_path.is_file():
            raise AddonMissing(self.settings.payload_path)
        if current.patched and not current.original_asar.is_file():
            raise BackupMissing(current.resources_path)

        app_asar = current.app_asar
        original_asar = current.original_asar
        moved = False

        try:
            if not current.patched:
                if app_asar.is_file():
                    os.replace(app_asar, original_asar)
                    moved = True
                elif not original_asar.is_file():
                    raise InvalidLocation(current.resources_path, "no app.asar to patch")

            write_atomic(app_asar, build_loader(self.settings.payload_path))
        except PermissionError as e:
            self._restore_original(original_asar, app_asar, moved)
            raise PermissionDenied(e.filename or current.resources_path, current.path) from e
        except OSError as e:
            self._restore_original(original_asar, app_asar, moved)
            raise InstallerError(f"Failed to patch {current.path}: {e}") from e

        self.logger.info(f"Patched {current.channel} install at {current.path}")
        return self.validator.validate(current.path, current.channel)

    def unpatch(self, install: InstallationDescriptor) -> InstallationDescriptor:
        """Restore Discord's original entry point. No-op when not patched.

        Raises:
            BackupMissing: if the original bundle disappeared
            PermissionDenied: if the resource folder is not writable
        """
        current = self.refresh(install)
        if not current.patched:
            self.logger.info(f"{current.path} is not patched, nothing to do")
            return current

        if not current.original_asar.is_file():
            raise BackupMissing(current.resources_path)

        try:
            os.replace(current.original_asar, current.app_asar)
        except PermissionError as e:
            raise PermissionDenied(e.filename or current.resources_path, current.path) from e
        except OSError as e:
            raise InstallerError(f"Failed to unpatch {current.path}: {e}") from e

        self.logger.info(f"Unpatched {current.channel} install at {current.path}")
        return self.validator.validate(current.path, current.channel)

    def _restore_original(self, original_asar: Path, app_asar: Path, moved: bool) -> None:
        if not moved:
            return
        try:
            os.replace(original_asar, app_asar)
        except OSError as e:
            self.logger.error(f"Could not move {original_asar} back to {app_asar}: {e}")
