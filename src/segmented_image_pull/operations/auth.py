"""Registry token exchange."""

import asyncio
import logging

import aiohttp

from ..core.session import parse_json_response
from ..core.types import BearerToken, RegistryConfig
from ..exceptions import AuthConnectionError, AuthServiceError, TokenMissingError
from ..utils.reference import pull_scope

logger = logging.getLogger(__name__)


def extract_token(data: object) -> str:
    """Pick the bearer token out of a token endpoint response.

    Raises:
        AuthServiceError: If the response reports an error
        TokenMissingError: If neither ``token`` nor ``access_token`` holds a
            non-empty string
    """
    if not isinstance(data, dict):
        raise AuthServiceError(f"Unexpected token response: {data!r}")

    if data.get("error") or data.get("errors"):
        raise AuthServiceError(f"Error from auth service: {data}")

    token = data.get("token") or data.get("access_token")
    if not token or not isinstance(token, str):
        raise TokenMissingError("Failed to extract token from response")
    return token


async def fetch_token(
    session: aiohttp.ClientSession, config: RegistryConfig, image_reference: str
) -> BearerToken:
    """Exchange an image reference for a pull token.

    Args:
        session: HTTP session
        config: Registry configuration
        image_reference: Image reference (e.g., alpine:latest)

    Returns:
        Bearer token scoped to pulling the reference's repository

    Raises:
        AuthConnectionError: If the token endpoint gave no response
        AuthServiceError: If the token endpoint reported an error
        TokenMissingError: If the response carries no token
    """
    scope = pull_scope(image_reference)
    logger.info("Fetching bearer token for %s", scope)

    try:
        async with session.get(
            config.auth_url,
            params={"service": config.auth_service, "scope": scope},
        ) as resp:
            status = resp.status
            body = await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise AuthConnectionError(
            f"Failed to get token response, please check network connection: {e}"
        ) from e

    if not body.strip():
        raise AuthConnectionError(
            "Empty token response, please check network connection"
        )

    try:
        data = parse_json_response(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise AuthServiceError(
            f"Error from auth service (HTTP {status}): {body[:200]!r}"
        ) from e

    if status >= 400:
        raise AuthServiceError(f"Error from auth service (HTTP {status}): {data}")

    token = BearerToken(value=extract_token(data), scope=scope)
    logger.info("Got token: %s", token.summary)
    return token
