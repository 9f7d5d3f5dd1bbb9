"""Image inspection through skopeo."""

import asyncio
import logging
from typing import Protocol

from ..exceptions import InspectorError

logger = logging.getLogger(__name__)


class ImageInspector(Protocol):
    """Anything able to return manifest or config JSON for an image."""

    async def inspect(
        self,
        image_reference: str,
        raw: bool = False,
        config: bool = False,
        arch: str | None = None,
        os_name: str | None = None,
    ) -> bytes: ...


def build_inspect_command(
    executable: str,
    image_reference: str,
    raw: bool = False,
    config: bool = False,
    arch: str | None = None,
    os_name: str | None = None,
) -> list[str]:
    """Build the skopeo command line for an inspect call."""
    command = [executable]
    if arch:
        command.append(f"--override-arch={arch}")
    if os_name:
        command.append(f"--override-os={os_name}")
    command += ["inspect", f"docker://{image_reference}"]
    if raw:
        command.append("--raw")
    if config:
        command.append("--config")
    return command


class SkopeoInspector:
    """Run ``skopeo inspect`` as a subprocess."""

    def __init__(self, executable: str = "skopeo") -> None:
        self.executable = executable

    async def inspect(
        self,
        image_reference: str,
        raw: bool = False,
        config: bool = False,
        arch: str | None = None,
        os_name: str | None = None,
    ) -> bytes:
        """Inspect an image and return the tool's stdout.

        Args:
            image_reference: Image reference without transport prefix
            raw: Return the registry manifest as stored instead of skopeo's summary
            config: Return the image config instead of the manifest
            arch: Architecture used to pick an entry from a manifest list
            os_name: OS used to pick an entry from a manifest list

        Returns:
            Raw stdout bytes

        Raises:
            InspectorError: If skopeo cannot be started or exits non-zero
        """
        command = build_inspect_command(
            self.executable, image_reference, raw, config, arch, os_name
        )
        logger.debug("Running %s", " ".join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise InspectorError(f"Cannot run {self.executable}: {e}") from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise InspectorError(
                f"{self.executable} inspect {image_reference} failed "
                f"with exit code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )
        return stdout
