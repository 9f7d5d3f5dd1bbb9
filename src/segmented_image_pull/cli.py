"""CLI entrypoint for segmented image pulls."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import __version__
from .core.cache import DEFAULT_CACHE_DIR, DEFAULT_TTL, ResultCache
from .core.types import DownloadOptions, RetryPolicy
from .exceptions import RegistryError
from .pull import DEFAULT_ARCH, DEFAULT_OUTPUT_DIR, pull_image

logger = logging.getLogger("segmented_image_pull")

CLI_DESCRIPTION = (
    "Download container images with resumable, segmented transfers and "
    "write them in the directory image transport format."
)
CLI_EPILOG = "Example: segmented-pull -d docker-layers -v -c 4 alpine:latest"


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from e
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value!r}")
    return number


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from e
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build top-level CLI parser."""
    parser = argparse.ArgumentParser(
        prog="segmented-pull",
        description=CLI_DESCRIPTION,
        epilog=CLI_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("image", metavar="IMAGE_NAME", help="Image reference, e.g. alpine:latest")
    parser.add_argument(
        "-d",
        "--dir",
        type=Path,
        default=DEFAULT_OUTPUT_DIR,
        help=f"Output directory for downloaded blobs (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "-c",
        "--connections",
        type=_positive_int,
        default=1,
        help="Number of connections for segmented downloading (default: 1)",
    )
    parser.add_argument(
        "-arch",
        "--architecture",
        default=DEFAULT_ARCH,
        help=f"Select image architecture (default: {DEFAULT_ARCH})",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=DEFAULT_CACHE_DIR,
        help=f"Directory for cached registry responses (default: {DEFAULT_CACHE_DIR})",
    )
    parser.add_argument(
        "--cache-ttl",
        type=_non_negative_float,
        default=DEFAULT_TTL,
        help=f"Seconds a cached registry response stays valid (default: {DEFAULT_TTL})",
    )
    parser.add_argument("--no-cache", action="store_true", help="Disable cache reads/writes")
    parser.add_argument(
        "--retries",
        type=_positive_int,
        default=1,
        help="Attempts per layer before giving up (default: 1)",
    )
    parser.add_argument(
        "--retry-delay",
        type=_non_negative_float,
        default=0.0,
        help="Seconds to wait between layer attempts (default: 0)",
    )
    parser.add_argument(
        "--no-verify", action="store_true", help="Skip digest verification of downloaded layers"
    )
    return parser


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; errors are shown regardless of verbosity."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
        force=True,
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    cache = ResultCache(args.cache_dir, enabled=not args.no_cache)
    options = DownloadOptions(connections=args.connections)
    retry = RetryPolicy(attempts=args.retries, delay=args.retry_delay)

    try:
        asyncio.run(
            pull_image(
                args.image,
                args.dir,
                arch=args.architecture,
                options=options,
                cache=cache,
                ttl=args.cache_ttl,
                retry=retry,
                verify=not args.no_verify,
            )
        )
    except RegistryError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted; re-run the same command to resume the download")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
