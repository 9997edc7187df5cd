"""Error taxonomy for installer operations.

Every failure that reaches a caller is one of these, so the caller can pick
platform specific remediation text without inspecting transport errors.
"""

import platform
from pathlib import Path
from typing import Optional, Union


class InstallerError(Exception):
    """Base exception for installer errors."""
    pass


class InvalidLocation(InstallerError):
    """Raised when a directory is not a recognizable Discord installation."""

    def __init__(self, path: Union[str, Path], reason: str = "not a Discord installation"):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ScuffedInstall(InstallerError):
    """Raised when an install exists but its layout is displaced.

    Recoverable by the user: ``remediation_path`` is the folder they should
    open and clean up before reinstalling the client.
    """

    def __init__(self, path: Union[str, Path], remediation_path: Optional[Union[str, Path]] = None):
        self.path = Path(path)
        self.remediation_path = Path(remediation_path) if remediation_path else self.path
        super().__init__(
            f"Discord at {self.path} looks misplaced or corrupted. "
            f"Delete the 'Discord' or 'Squirrel' folders in {self.remediation_path}, then reinstall Discord."
        )


class PermissionDenied(InstallerError):
    """Raised when the installer may not write into an installation."""

    def __init__(self, path: Union[str, Path], install_path: Optional[Union[str, Path]] = None):
        self.path = Path(path)
        self.install_path = Path(install_path) if install_path else self.path
        super().__init__(f"Permission denied: {self.path}")

    def remediation(self, system: Optional[str] = None) -> str:
        """Build the OS specific hint for fixing the permission problem.

        Args:
            system: ``platform.system()`` value (defaults to the running OS)

        Returns:
            Human readable remediation text
        """
        system = system or platform.system()

        if system == "Windows":
            return "Permission denied. Make sure Discord is fully closed (including from the system tray)!"
        if system == "Darwin":
            command = f'sudo chown -R "${{USER}}:wheel" "{self.install_path}"'
            return (
                "Permission denied. Please grant the installer Full Disk Access in System Settings.\n\n"
                f"If that does not help, try running:\n{command}"
            )
        if system == "Linux":
            command = f'sudo chown -R "$USER:$USER" "{self.install_path}"'
            return (
                "Permission denied. Try running the installer with sudo.\n\n"
                f"Recommended command:\n{command}"
            )
        return "Permission denied. Try running the installer as Administrator."


class NetworkUnavailable(InstallerError):
    """Raised when the release feed cannot be reached."""
    pass


class RateLimited(NetworkUnavailable):
    """Raised when the release API refuses requests because of rate limiting."""
    pass


class ResolutionFailed(InstallerError):
    """Raised when no usable release (tag plus download asset) could be resolved."""
    pass


class DownloadFailed(InstallerError):
    """Raised when an artifact could not be downloaded completely."""
    pass


class ReplaceFailed(InstallerError):
    """Raised when the running executable could not be swapped for a new one."""
    pass


class AddonMissing(InstallerError):
    """Raised when patching is requested before the Mushcord payload was downloaded."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Mushcord payload not found at {self.path}. Run 'repair' to download it first.")


class BackupMissing(InstallerError):
    """Raised when a patched install lost the original client bundle."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(
            f"The original Discord bundle is missing from {self.path}. Reinstall Discord to restore it."
        )
