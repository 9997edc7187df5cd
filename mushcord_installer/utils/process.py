"""Finding Discord clients that are running from an install."""

import os
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional

import psutil


class ClientProcess(NamedTuple):
    pid: int
    name: str
    exe: Optional[str]


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([os.path.normcase(path), os.path.normcase(root)]) == os.path.normcase(root)
    except ValueError:
        # Different drives on Windows
        return False


def running_clients(install_path: Path, processes: Optional[Iterable] = None) -> List[ClientProcess]:
    """Processes whose executable lives inside ``install_path``.

    A client that is still running holds its asar open on Windows and
    rewrites it on its next update elsewhere, so callers warn first.

    Args:
        install_path: Root of a Discord install
        processes: Process iterator to scan (defaults to ``psutil.process_iter``)

    Returns:
        Matching processes; processes we may not inspect are skipped
    """
    root = os.path.realpath(str(install_path))
    if processes is None:
        processes = psutil.process_iter(['pid', 'name', 'exe'])

    found = []
    for proc in processes:
        try:
            exe = proc.info.get('exe')
            if exe and _is_within(os.path.realpath(exe), root):
                found.append(ClientProcess(proc.info['pid'], proc.info.get('name') or '', exe))
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return found
