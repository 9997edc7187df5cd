"""Minimal reader and writer for Electron asar archives.

Layout: a Chromium pickle holding the header size, a second pickle holding
the JSON header string, then the concatenated file contents. File offsets in
the header are relative to the end of the second pickle.
"""

import json
import struct
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Set, Tuple, Union

# Discord's own app.asar headers are well below this
MAX_HEADER_SIZE = 64 * 1024 * 1024


class AsarError(Exception):
    """Raised when a file is not a readable asar archive."""
    pass


def _align4(size: int) -> int:
    return (size + 3) & ~3


def pack(files: Mapping[str, bytes]) -> bytes:
    """Build an asar archive from a flat mapping of file names to contents.

    Names may contain ``/`` to place files in subdirectories.
    """
    tree: Dict[str, Any] = {'files': {}}
    body = bytearray()

    for name, content in files.items():
        node = tree
        parts = name.strip('/').split('/')
        for part in parts[:-1]:
            node = node['files'].setdefault(part, {'files': {}})
        node['files'][parts[-1]] = {'size': len(content), 'offset': str(len(body))}
        body.extend(content)

    header_json = json.dumps(tree, separators=(',', ':')).encode('utf-8')
    padded_len = _align4(len(header_json))
    header_payload = struct.pack('<I', len(header_json)) + header_json + b'\0' * (padded_len - len(header_json))
    header_pickle = struct.pack('<I', len(header_payload)) + header_payload
    size_pickle = struct.pack('<II', 4, len(header_pickle))

    return size_pickle + header_pickle + bytes(body)


def _read_header_from(f) -> Tuple[Dict[str, Any], int]:
    prefix = f.read(16)
    if len(prefix) < 16:
        raise AsarError("file too short for an asar header")

    size_payload, header_size, _header_payload, json_len = struct.unpack('<IIII', prefix)
    if size_payload != 4 or json_len > header_size or header_size > MAX_HEADER_SIZE:
        raise AsarError("bad asar header")

    raw = f.read(json_len)
    if len(raw) < json_len:
        raise AsarError("truncated asar header")

    try:
        header = json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise AsarError(f"invalid asar header JSON: {e}") from e

    if not isinstance(header, dict) or not isinstance(header.get('files'), dict):
        raise AsarError("asar header has no file table")

    return header, 8 + header_size


def read_header(path: Union[str, Path]) -> Dict[str, Any]:
    """Read the JSON header of an asar archive.

    Raises:
        AsarError: if the file is not an asar archive
        OSError: if the file cannot be read
    """
    with open(path, 'rb') as f:
        header, _ = _read_header_from(f)
    return header


def _find_entry(header: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    node = header
    for part in name.strip('/').split('/'):
        files = node.get('files')
        if not isinstance(files, dict) or part not in files:
            return None
        node = files[part]
    return node


def read_file(path: Union[str, Path], name: str) -> Optional[bytes]:
    """Read one packed file from an asar archive.

    Returns:
        The file contents, or None if the archive has no such packed file

    Raises:
        AsarError: if the file is not an asar archive
    """
    with open(path, 'rb') as f:
        header, base = _read_header_from(f)
        entry = _find_entry(header, name)
        if entry is None or 'files' in entry or entry.get('unpacked'):
            return None

        try:
            offset = int(entry['offset'])
            size = int(entry['size'])
        except (KeyError, TypeError, ValueError) as e:
            raise AsarError(f"bad header entry for {name}") from e

        f.seek(base + offset)
        content = f.read(size)

    if len(content) != size:
        raise AsarError(f"truncated asar entry {name}")
    return content


def top_level_names(path: Union[str, Path]) -> Set[str]:
    """Names of the root entries of an asar archive."""
    return set(read_header(path)['files'])
