"""Manifest retrieval and interpretation."""

import json
import logging
from typing import Any

from ..exceptions import (
    EmptyManifestError,
    InvalidManifestError,
    ManifestError,
    NoLayersFoundError,
    PlatformNotFoundError,
)
from ..tools.inspector import ImageInspector

logger = logging.getLogger(__name__)

PLATFORM_OS = "linux"


async def get_manifest(
    inspector: ImageInspector,
    image_reference: str,
    *,
    raw: bool = False,
    config: bool = False,
    arch: str | None = None,
    os_name: str | None = None,
) -> bytes:
    """Fetch a manifest or image config through the inspector.

    No manifest semantics are interpreted here; the output is only checked
    to be non-empty, well-formed JSON.

    Args:
        inspector: Image inspector
        image_reference: Image reference (tagged or pinned by digest)
        raw: Return the registry document as stored
        config: Return the image config instead of the manifest
        arch: Platform architecture override
        os_name: Platform OS override

    Returns:
        Raw JSON bytes

    Raises:
        EmptyManifestError: If the inspector returned nothing
        InvalidManifestError: If the output is not valid JSON
        InspectorError: If the inspector failed
    """
    logger.info("Fetching %s for %s", "config" if config else "manifest", image_reference)

    output = await inspector.inspect(
        image_reference, raw=raw, config=config, arch=arch, os_name=os_name
    )
    if not output or not output.strip():
        raise EmptyManifestError(
            f"Get manifest for {image_reference} error, please check network connection"
        )

    try:
        json.loads(output)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidManifestError(
            f"Invalid JSON response for {image_reference}: {e}"
        ) from e

    return output


def load_manifest(document: bytes) -> dict[str, Any]:
    """Parse manifest bytes into a JSON object.

    Raises:
        InvalidManifestError: If the document is not a JSON object
    """
    try:
        manifest = json.loads(document)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidManifestError(f"Invalid manifest JSON: {e}") from e
    if not isinstance(manifest, dict):
        raise InvalidManifestError("Manifest is not a JSON object")
    return manifest


def extract_layer_digests(manifest: dict[str, Any]) -> list[str]:
    """Return layer digests in order from a normalized manifest.

    Raises:
        NoLayersFoundError: If the manifest lists no layers
    """
    layers = manifest.get("Layers") or []
    if not isinstance(layers, list) or not layers:
        raise NoLayersFoundError("No layers found in manifest")
    return [str(digest) for digest in layers]


def is_manifest_index(manifest: dict[str, Any]) -> bool:
    """Check if a raw manifest is a multi-platform index."""
    return isinstance(manifest.get("manifests"), list)


def select_platform_digest(
    index: dict[str, Any], arch: str, os_name: str = PLATFORM_OS
) -> str:
    """Pick the manifest digest for a platform from a multi-platform index.

    Raises:
        PlatformNotFoundError: If no entry matches
    """
    for entry in index.get("manifests", []):
        platform = entry.get("platform") or {}
        if platform.get("architecture") == arch and platform.get("os") == os_name:
            return entry["digest"]

    raise PlatformNotFoundError(f"No manifest found for platform {os_name}/{arch}")


def extract_config_digest(manifest: dict[str, Any]) -> str:
    """Return ``config.digest`` of a platform manifest.

    Raises:
        ManifestError: If the field is missing
    """
    config = manifest.get("config")
    if not isinstance(config, dict) or not config.get("digest"):
        raise ManifestError("Platform manifest has no config digest")
    return config["digest"]
