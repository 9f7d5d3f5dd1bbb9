"""Digest calculation and validation utilities."""

import hashlib
import re
from pathlib import Path
from typing import Union

from ..exceptions import InvalidDigestError

# Regex pattern for valid digest format (algorithm:hex)
DIGEST_PATTERN = re.compile(r"^[a-z0-9]+:[a-f0-9]+$")

FILE_HASH_CHUNK_SIZE = 1024 * 1024


def calculate_digest(data: Union[bytes, bytearray], algorithm: str = "sha256") -> str:
    """Calculate digest of data.

    Args:
        data: Data to hash
        algorithm: Hash algorithm (default: sha256)

    Returns:
        Digest string in format "algorithm:hex"

    Raises:
        ValueError: If algorithm is not supported
        ValueError: If data is not bytes-like
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")

    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    hasher = hashlib.new(algorithm)
    hasher.update(data)
    return f"{algorithm}:{hasher.hexdigest()}"


def validate_digest(digest: str) -> bool:
    """Validate digest format.

    Args:
        digest: Digest string to validate

    Returns:
        True if valid digest format
    """
    if not isinstance(digest, str):
        return False

    if not DIGEST_PATTERN.match(digest):
        return False

    # Check if algorithm is valid
    algorithm, _ = digest.split(":", 1)
    return algorithm in ["sha256", "sha512"]


def digest_to_filename(digest: str) -> str:
    """Return the hex part of an ``algorithm:hex`` digest.

    Raises:
        InvalidDigestError: If digest format is invalid
    """
    if not validate_digest(digest):
        raise InvalidDigestError(f"Invalid digest format: {digest}")
    return digest.split(":", 1)[1]


def file_digest(path: Path, algorithm: str = "sha256") -> str:
    """Calculate the digest of a file without loading it into memory."""
    hasher = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(FILE_HASH_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return f"{algorithm}:{hasher.hexdigest()}"


def verify_file_digest(path: Path, expected_digest: str) -> bool:
    """Verify a file's content matches the expected digest.

    Raises:
        InvalidDigestError: If digest format is invalid
    """
    if not validate_digest(expected_digest):
        raise InvalidDigestError(f"Invalid digest format: {expected_digest}")

    algorithm, _ = expected_digest.split(":", 1)
    return file_digest(path, algorithm) == expected_digest
