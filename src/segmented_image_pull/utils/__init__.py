"""Utility functions for segmented image pulls."""

from .digest import calculate_digest, digest_to_filename, validate_digest
from .reference import parse_repository, pull_scope

__all__ = [
    "calculate_digest",
    "digest_to_filename",
    "validate_digest",
    "parse_repository",
    "pull_scope",
]
