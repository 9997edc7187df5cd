"""Artifact hashing and the installed-version marker."""

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ArtifactHasher:
    """Utility class for hashing downloaded artifacts and recording what is installed."""

    def __init__(self, hash_algorithm: str = 'sha256'):
        """Initialize the hasher with specified algorithm.

        Args:
            hash_algorithm: Hash algorithm to use (default: sha256)
        """
        self.hash_algorithm = hash_algorithm

    def calculate_file_hash(self, file_path: Path) -> Optional[str]:
        """Calculate hash of a file.

        Args:
            file_path: Path to the file to hash

        Returns:
            Hex digest of the file hash, or None if file doesn't exist
        """
        if not file_path.exists() or not file_path.is_file():
            return None

        hasher = hashlib.new(self.hash_algorithm)

        with open(file_path, 'rb') as f:
            # Read file in chunks to handle large files efficiently
            for chunk in iter(lambda: f.read(8192), b''):
                hasher.update(chunk)

        return hasher.hexdigest()

    def matches_digest(self, file_path: Path, digest: Optional[str]) -> bool:
        """Check a file against a ``<algorithm>:<hex>`` digest.

        Digests in an algorithm other than ours are not checked.

        Args:
            file_path: File to verify
            digest: Digest string as published by the release feed, or None

        Returns:
            False only when the digest is checkable and does not match
        """
        if not digest or ':' not in digest:
            return True

        algorithm, expected = digest.split(':', 1)
        if algorithm.lower() != self.hash_algorithm:
            logger.debug(f"Skipping {algorithm} digest check for {file_path.name}")
            return True

        actual = self.calculate_file_hash(file_path)
        return actual is not None and actual.lower() == expected.strip().lower()

    def save_marker(self, marker_file: Path, version: str, commit: Optional[str], file_hash: Optional[str]) -> None:
        """Record the installed release next to the payload.

        Args:
            marker_file: Marker file path inside the data directory
            version: Release tag that was installed
            commit: Commit hash of the release, if known
            file_hash: Hash of the installed payload
        """
        marker_data = {
            'version': version,
            'commit': commit,
            'hash': file_hash,
            'algorithm': self.hash_algorithm,
            'timestamp': time.time(),
        }

        tmp_file = marker_file.with_name(marker_file.name + '.tmp')
        with open(tmp_file, 'w', encoding='utf-8') as f:
            json.dump(marker_data, f, indent=2)
        tmp_file.replace(marker_file)

    def load_marker(self, marker_file: Path) -> Optional[Dict[str, Any]]:
        """Load the installed-release marker.

        Returns:
            Marker dictionary or None if the marker doesn't exist or is invalid
        """
        if not marker_file.exists():
            return None

        try:
            with open(marker_file, 'r', encoding='utf-8') as f:
                marker_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable marker {marker_file}: {e}")
            return None

        # Validate marker structure
        if not isinstance(marker_data, dict) or not marker_data.get('version'):
            return None

        return marker_data
