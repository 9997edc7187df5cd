"""Discovery of every Discord install on this machine."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Set, Union

from ..errors import InstallerError, InvalidLocation, ScuffedInstall
from .paths import PathOracle
from .validator import InstallationDescriptor, InstallValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredInstall:
    """Selection of an install from the latest discovery pass."""
    index: int


@dataclass(frozen=True)
class CustomPath:
    """Selection of a user supplied directory."""
    path: str


Selection = Union[DiscoveredInstall, CustomPath]


@dataclass(frozen=True)
class CustomPathResult:
    """Outcome of validating a user supplied directory.

    ``install`` is None on any failure; ``scuffed`` tells a displaced
    install apart from a directory that simply isn't Discord.
    """
    install: Optional[InstallationDescriptor]
    scuffed: bool = False
    error: Optional[InstallerError] = None


def _identity(path: Path) -> str:
    return os.path.normcase(os.path.realpath(path))


class InstallationLocator:
    """Runs the path oracle through the validator and keeps what is real."""

    def __init__(self, oracle: Optional[PathOracle] = None, validator: Optional[InstallValidator] = None):
        self.oracle = oracle or PathOracle()
        self.validator = validator or InstallValidator()

    def discover(self) -> List[InstallationDescriptor]:
        """Find every install the oracle's candidates point at.

        Absent or invalid candidates are the common case and are skipped
        silently; the same directory reached through two names is listed once.
        """
        installs = []
        seen: Set[str] = set()

        for candidate in self.oracle.candidates():
            if not candidate.path.is_dir():
                continue

            identity = _identity(candidate.path)
            if identity in seen:
                continue

            try:
                install = self.validator.validate(candidate.path, candidate.channel)
            except InstallerError as e:
                logger.debug(f"Skipping {candidate.path}: {e}")
                continue

            seen.add(identity)
            installs.append(install)
            logger.info(f"Found {install.channel} install at {install.path}")

        return installs

    def validate_custom(self, path: Union[str, Path]) -> CustomPathResult:
        """Validate a user supplied directory without channel constraints."""
        try:
            return CustomPathResult(self.validator.validate(path))
        except ScuffedInstall as e:
            return CustomPathResult(None, scuffed=True, error=e)
        except InvalidLocation as e:
            return CustomPathResult(None, error=e)

    def resolve(self, selection: Selection, installs: Sequence[InstallationDescriptor]) -> InstallationDescriptor:
        """Turn a selection into a concrete descriptor before any engine call.

        Raises:
            InvalidLocation: if the selection does not point at an install
            ScuffedInstall: if a custom path holds a displaced install
        """
        if isinstance(selection, DiscoveredInstall):
            if not 0 <= selection.index < len(installs):
                raise InvalidLocation(Path(), f"no discovered install #{selection.index}")
            return installs[selection.index]

        result = self.validate_custom(selection.path)
        if result.install is None:
            raise result.error
        return result.install
