"""Client-side content hashing for evidence files."""

import hashlib
import os
from typing import Union

CHUNK_SIZE = 1024 * 1024


class HashComputationError(Exception):
    """A file or buffer could not be hashed."""


def hash_bytes(data: bytes) -> str:
    """SHA-256 hex digest of an in-memory buffer."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise HashComputationError(f"Cannot hash {type(data).__name__}, expected bytes")
    return hashlib.sha256(data).hexdigest()


def hash_file(path: Union[str, os.PathLike], chunk_size: int = CHUNK_SIZE) -> str:
    """
    SHA-256 hex digest of a file, read in chunks.

    Args:
        path: File to hash
        chunk_size: Read size in bytes

    Returns:
        Lowercase hex digest

    Raises:
        HashComputationError: If the file cannot be read
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as e:
        raise HashComputationError(f"Cannot read {path}: {e}") from e
    return digest.hexdigest()
