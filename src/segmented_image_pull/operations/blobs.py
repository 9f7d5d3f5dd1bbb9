"""Blob redirect resolution and segmented download."""

import asyncio
import logging
from pathlib import Path
from urllib.parse import urljoin

import aiohttp

from ..core.types import BearerToken, DownloadOptions, RegistryConfig
from ..exceptions import RedirectResolutionError
from ..tools.transfer import SegmentedTransfer

logger = logging.getLogger(__name__)

MANIFEST_V2_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"


def blob_url(config: RegistryConfig, repository: str, digest: str) -> str:
    return f"{config.base_url}/v2/{repository}/blobs/{digest}"


def auth_headers(token: BearerToken) -> dict[str, str]:
    return {"Authorization": f"Bearer {token.value}"}


async def resolve_blob_url(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    repository: str,
    digest: str,
    token: BearerToken,
) -> tuple[str, dict[str, str]]:
    """Find where a blob is actually served from.

    Registries usually answer with a redirect to a pre-signed storage URL
    that needs no credentials. When the registry serves the blob itself the
    registry URL is returned together with the bearer header.

    Args:
        session: HTTP session
        config: Registry configuration
        repository: Repository name (e.g., library/alpine)
        digest: Blob digest
        token: Pull token for the repository

    Returns:
        Tuple of (download URL, headers the download needs)

    Raises:
        RedirectResolutionError: If the HEAD request fails
    """
    url = blob_url(config, repository, digest)
    logger.info("Getting redirect URL for blob %s", digest)

    try:
        async with session.head(
            url,
            headers={**auth_headers(token), "Accept": MANIFEST_V2_MEDIA_TYPE},
            allow_redirects=False,
        ) as resp:
            status = resp.status
            location = resp.headers.get("Location", "")
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise RedirectResolutionError(
            f"Get redirect URL for blob {digest}, please check network connection: {e}"
        ) from e

    if status >= 400:
        raise RedirectResolutionError(
            f"Get redirect URL for blob {digest} failed with HTTP {status}"
        )

    if not location:
        return url, auth_headers(token)

    if not location.startswith("http"):
        location = urljoin(config.base_url, location)
    logger.debug("Following redirect to %s", location)
    return location, {}


async def download_blob(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    transfer: SegmentedTransfer,
    repository: str,
    digest: str,
    output_path: Path,
    token: BearerToken,
    options: DownloadOptions,
) -> None:
    """Download one blob with a resumable, segmented transfer.

    Raises:
        RedirectResolutionError: If the blob location cannot be resolved
        TransferError: If the transfer fails
    """
    logger.info("Downloading blob %s to %s", digest, output_path)
    url, headers = await resolve_blob_url(session, config, repository, digest, token)
    await transfer.fetch(url, output_path, options, headers=headers)
