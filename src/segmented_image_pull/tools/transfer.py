"""Resumable segmented transfers through aria2c."""

import asyncio
import logging
from contextlib import suppress
from pathlib import Path
from typing import Protocol

from ..core.types import DownloadOptions
from ..exceptions import TransferError

logger = logging.getLogger(__name__)

# aria2c keeps its resume state next to the output file
CONTROL_FILE_SUFFIX = ".aria2"


class SegmentedTransfer(Protocol):
    """Anything able to fetch a URL into a file with resume support."""

    async def fetch(
        self,
        url: str,
        output_path: Path,
        options: DownloadOptions,
        headers: dict[str, str] | None = None,
    ) -> None: ...


def build_transfer_command(
    executable: str,
    url: str,
    output_path: Path,
    options: DownloadOptions,
    headers: dict[str, str] | None = None,
) -> list[str]:
    """Build the aria2c command line for one blob."""
    all_headers = {"User-Agent": options.user_agent, **(headers or {})}
    command = [executable]
    command += [f"--header={name}: {value}" for name, value in all_headers.items()]
    command += [
        "--continue=true",
        f"--split={options.connections}",
        f"--max-connection-per-server={options.max_connections_per_server}",
        f"--min-split-size={options.min_split_size}",
        f"--dir={output_path.parent}",
        f"--out={output_path.name}",
        url,
    ]
    return command


class Aria2Transfer:
    """Run ``aria2c`` as a subprocess.

    Partial files are left in place on failure so a later run continues them.
    """

    def __init__(self, executable: str = "aria2c") -> None:
        self.executable = executable

    async def fetch(
        self,
        url: str,
        output_path: Path,
        options: DownloadOptions,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Download ``url`` into ``output_path``.

        Raises:
            TransferError: If aria2c cannot be started or exits non-zero
        """
        command = build_transfer_command(
            self.executable, url, output_path, options, headers
        )
        # Headers may carry credentials
        logger.debug("Running %s for %s", self.executable, output_path.name)

        try:
            process = await asyncio.create_subprocess_exec(*command)
        except OSError as e:
            raise TransferError(f"Cannot run {self.executable}: {e}") from e

        returncode = await process.wait()
        if returncode != 0:
            raise TransferError(
                f"{self.executable} failed for {output_path.name} "
                f"with exit code {returncode}"
            )


def control_file_path(output_path: Path) -> Path:
    return output_path.with_name(output_path.name + CONTROL_FILE_SUFFIX)


def discard_download(output_path: Path) -> None:
    """Remove a downloaded file and its control file so the next fetch starts over."""
    for path in (output_path, control_file_path(output_path)):
        with suppress(FileNotFoundError):
            path.unlink()
