"""Directory image transport layout helpers."""

import json
from pathlib import Path
from typing import Any

from ..exceptions import OutputWriteError
from .digest import digest_to_filename, validate_digest

MANIFEST_FILENAME = "manifest.json"
VERSION_FILENAME = "version"
DIR_TRANSPORT_VERSION = "Directory Transport Version: 1.1\n"


def _write_file(path: Path, data: bytes) -> Path:
    try:
        path.write_bytes(data)
    except OSError as e:
        raise OutputWriteError(f"Failed to write {path}: {e}") from e
    return path


def prepare_output_dir(output_dir: Path) -> Path:
    """Create the output directory if needed.

    Raises:
        OutputWriteError: If the directory cannot be created
    """
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(f"Failed to create output directory {output_dir}: {e}") from e
    return output_dir


def write_version_marker(output_dir: Path) -> Path:
    """Write the transport version marker file."""
    return _write_file(
        output_dir / VERSION_FILENAME, DIR_TRANSPORT_VERSION.encode("utf-8")
    )


def write_manifest(output_dir: Path, manifest: bytes) -> Path:
    """Write the platform manifest verbatim."""
    return _write_file(output_dir / MANIFEST_FILENAME, manifest)


def blob_path(output_dir: Path, digest: str) -> Path:
    """Content-addressed path of a blob inside the output directory."""
    return output_dir / digest_to_filename(digest)


def write_blob(output_dir: Path, digest: str, data: bytes) -> Path:
    """Write a blob held in memory under its content-addressed name."""
    return _write_file(blob_path(output_dir, digest), data)


def is_version_marker_valid(output_dir: Path) -> bool:
    """Check if the version marker exists with the expected content."""
    path = output_dir / VERSION_FILENAME
    return path.is_file() and path.read_text(encoding="utf-8") == DIR_TRANSPORT_VERSION


def load_layout_manifest(output_dir: Path) -> dict[str, Any] | None:
    """Load manifest.json from the output directory."""
    path = output_dir / MANIFEST_FILENAME
    try:
        manifest = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(manifest, dict):
        return None
    return manifest


def referenced_digests(manifest: dict[str, Any]) -> list[str]:
    """Return the config digest followed by every layer digest."""
    digests = []
    config = manifest.get("config")
    if isinstance(config, dict) and config.get("digest"):
        digests.append(config["digest"])
    for layer in manifest.get("layers", []) or []:
        if isinstance(layer, dict) and layer.get("digest"):
            digests.append(layer["digest"])
    return digests


def are_all_blobs_present(output_dir: Path, digests: list[str]) -> bool:
    """Check if every referenced blob exists in the output directory."""
    return all(
        validate_digest(digest) and blob_path(output_dir, digest).is_file()
        for digest in digests
    )


def validate_dir_layout(output_dir: Path) -> bool:
    """Check whether a directory is a complete directory-transport image.

    The directory must hold the version marker, a manifest.json with a
    ``config.digest`` field and one file for the config blob and every layer
    the manifest references.

    Args:
        output_dir: Directory to check

    Returns:
        True if the layout is complete
    """
    if not output_dir.is_dir():
        return False

    if not is_version_marker_valid(output_dir):
        return False

    manifest = load_layout_manifest(output_dir)
    if manifest is None:
        return False

    config = manifest.get("config")
    if not isinstance(config, dict) or "digest" not in config:
        return False

    return are_all_blobs_present(output_dir, referenced_digests(manifest))
