"""Fingerprinting of the dependency manifest and archive naming."""

import hashlib
from pathlib import Path

from .errors import ManifestNotFoundError
from .hash_constants import HASH_ALGORITHM, BLOCK_SIZE, ARCHIVE_PREFIX, ARCHIVE_SUFFIX


def compute_manifest_fingerprint(manifest_path: Path) -> str:
    """
    Calculates the digest of the manifest's content in blocks.
    
    Args:
        manifest_path: Path to the dependency manifest (package.json)
        
    Returns:
        The lowercase hexadecimal digest
        
    Raises:
        ManifestNotFoundError: If the manifest is missing
    """
    manifest_path = Path(manifest_path)
    if not manifest_path.is_file():
        raise ManifestNotFoundError(f"Manifest file not found: {manifest_path}")
    
    hasher = hashlib.new(HASH_ALGORITHM, usedforsecurity=False)
    with open(manifest_path, "rb") as f:
        while True:
            chunk = f.read(BLOCK_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def archive_name(fingerprint: str) -> str:
    """Name shared by the local archive file and the remote blob."""
    return f"{ARCHIVE_PREFIX}{fingerprint}{ARCHIVE_SUFFIX}"
