# provenance/hashing.py
"""
Content hashing for asset files.

The registry never checks a content hash; this only helps a caller
compute the one it asserts at registration.
"""

import hashlib
from pathlib import Path


def hash_file(path: Path | str, algorithm: str = "sha3_256") -> str:
    """
    Compute content hash of a file.

    Args:
        path: File to hash
        algorithm: Hash algorithm (sha3_256, sha3_512, sha256, blake2b)

    Returns:
        Full hex digest (no truncation)
    """
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()
