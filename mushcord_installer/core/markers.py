"""On-disk evidence of the Mushcord loader and of OpenAsar."""

from pathlib import Path

from . import asar

LOADER_MARKER = "// mushcord-loader"
OPENASAR_SIGNATURE = b"OpenAsar"


def _entry_contains(archive: Path, name: str, needle: bytes) -> bool:
    if not archive.is_file():
        return False
    try:
        content = asar.read_file(archive, name)
    except (asar.AsarError, OSError):
        return False
    return content is not None and needle in content


def is_loader_asar(archive: Path) -> bool:
    """Check whether an ``app.asar`` is the Mushcord loader rather than Discord itself."""
    return _entry_contains(archive, 'index.js', LOADER_MARKER.encode('utf-8'))


def is_open_asar(archive: Path) -> bool:
    """Check whether a client-core bundle is OpenAsar (it logs its own name on init)."""
    return _entry_contains(archive, 'index.js', OPENASAR_SIGNATURE)
