"""SHA-256 content hashing for evidence files."""

import hashlib
import os
import re
from typing import BinaryIO

from casevault_api.ledger.exceptions import HashComputationError

HASH_ALGORITHM = "SHA-256"
DEFAULT_CHUNK_SIZE = 1024 * 1024

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


def hash_bytes(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise HashComputationError(
            f"Cannot hash input of type {type(data).__name__}; bytes required"
        )
    return hashlib.sha256(data).hexdigest()


def hash_stream(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Hash a binary stream in chunks without loading it whole."""
    if stream is None:
        raise HashComputationError("No input stream to hash")

    digest = hashlib.sha256()
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            if not isinstance(chunk, (bytes, bytearray)):
                raise HashComputationError("Stream must be opened in binary mode")
            digest.update(chunk)
    except OSError as e:
        raise HashComputationError(f"Failed to read input: {e}") from e
    return digest.hexdigest()


def stream_size(stream: BinaryIO) -> int:
    """Return the length of a seekable stream and rewind it."""
    try:
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
    except (AttributeError, OSError, ValueError) as e:
        raise HashComputationError(f"Input is not a readable binary stream: {e}") from e
    return size


def is_sha256_hex(value: str) -> bool:
    """Check that ``value`` looks like a lowercase SHA-256 hex digest."""
    return bool(value) and bool(_SHA256_HEX.match(value))


def normalize_digest(value: str) -> str:
    """Normalize a user-supplied digest: strip whitespace, lowercase, drop a ``sha256:`` prefix."""
    value = (value or "").strip().lower()
    if value.startswith("sha256:"):
        value = value[len("sha256:"):]
    return value
