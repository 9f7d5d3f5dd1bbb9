"""Example usage of the async pull API."""

import asyncio
import logging
import sys

# Add parent directory to path
sys.path.insert(0, "src")

from segmented_image_pull import (
    DownloadOptions,
    RegistryError,
    RetryPolicy,
    pull_image,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    """Pull alpine for two architectures."""
    options = DownloadOptions(connections=4)
    retry = RetryPolicy(attempts=3, delay=5.0)

    for arch in ("amd64", "arm64"):
        try:
            logger.info(f"Pulling alpine:latest for linux/{arch}...")
            result = await pull_image(
                "alpine:latest",
                f"alpine-{arch}",
                arch=arch,
                options=options,
                retry=retry,
            )
            logger.info(f"✓ {len(result.layers)} layers in {result.output_dir}")
            logger.info(f"  Manifest: {result.manifest_digest}")
        except RegistryError as e:
            logger.error(f"Pull failed, re-run to resume: {e}")


if __name__ == "__main__":
    asyncio.run(main())
