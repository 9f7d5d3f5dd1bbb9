"""HTTP session helpers."""

import json
from typing import Any

import aiohttp

from .types import RegistryConfig


async def create_session(config: RegistryConfig | None = None) -> aiohttp.ClientSession:
    """Create an aiohttp session with the registry's connect and total timeouts.

    Args:
        config: Registry configuration (defaults to Docker Hub)

    Returns:
        New client session; the caller is responsible for closing it
    """
    config = config or RegistryConfig()
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(
            total=config.timeout, connect=config.connect_timeout
        ),
    )


def parse_json_response(body: bytes | str) -> Any:
    """Parse a JSON response body.

    Raises:
        ValueError: If the body is not valid JSON
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    return json.loads(body)
