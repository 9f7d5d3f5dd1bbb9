"""Async functional style pull operations."""

import asyncio
import logging
from functools import partial
from pathlib import Path

import aiohttp

from .core.cache import DEFAULT_TTL, ResultCache
from .core.session import create_session
from .core.types import (
    BearerToken,
    DownloadOptions,
    LayerDescriptor,
    PullResult,
    RegistryConfig,
    RetryPolicy,
)
from .exceptions import DigestMismatchError, DownloadError, TransferError
from .operations.auth import fetch_token
from .operations.blobs import download_blob
from .operations.manifests import (
    PLATFORM_OS,
    extract_config_digest,
    extract_layer_digests,
    get_manifest,
    is_manifest_index,
    load_manifest,
    select_platform_digest,
)
from .tools.inspector import ImageInspector, SkopeoInspector
from .tools.transfer import Aria2Transfer, SegmentedTransfer, discard_download
from .utils.digest import calculate_digest, verify_file_digest
from .utils.layout import (
    blob_path,
    prepare_output_dir,
    validate_dir_layout,
    write_blob,
    write_manifest,
    write_version_marker,
)
from .utils.reference import parse_repository, pinned_reference, pull_scope

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("./docker-blobs")
DEFAULT_ARCH = "amd64"


def manifest_cache_key(
    image_reference: str,
    raw: bool = False,
    config: bool = False,
    arch: str | None = None,
    os_name: str | None = None,
) -> str:
    """Cache key covering every parameter that changes an inspector result."""
    return (
        f"manifest:{image_reference}:raw={raw}:config={config}"
        f":arch={arch or ''}:os={os_name or ''}"
    )


def token_cache_key(config: RegistryConfig, scope: str) -> str:
    return f"token:{config.auth_url}:{config.auth_service}:{scope}"


def _decode_token(scope: str, payload: bytes) -> BearerToken:
    return BearerToken(value=payload.decode("utf-8"), scope=scope)


async def _cached_token(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    cache: ResultCache,
    ttl: float,
    image_reference: str,
) -> BearerToken:
    """Get a pull token, reusing a cached one while fresh."""
    scope = pull_scope(image_reference)
    return await cache.cached_call(
        token_cache_key(config, scope),
        ttl,
        lambda: fetch_token(session, config, image_reference),
        encode=lambda token: token.value.encode("utf-8"),
        decode=partial(_decode_token, scope),
    )


async def _cached_manifest(
    inspector: ImageInspector,
    cache: ResultCache,
    ttl: float,
    image_reference: str,
    *,
    raw: bool = False,
    config: bool = False,
    arch: str | None = None,
    os_name: str | None = None,
) -> bytes:
    """Fetch a manifest or config through the cache."""
    return await cache.cached_call(
        manifest_cache_key(image_reference, raw, config, arch, os_name),
        ttl,
        lambda: get_manifest(
            inspector,
            image_reference,
            raw=raw,
            config=config,
            arch=arch,
            os_name=os_name,
        ),
    )


def _verify_layer(layer: LayerDescriptor) -> None:
    """Check a downloaded layer, discarding it on mismatch.

    Raises:
        DigestMismatchError: If the file content does not match its digest
    """
    try:
        matches = verify_file_digest(layer.output_path, layer.digest)
    except OSError as e:
        raise TransferError(f"Cannot read downloaded blob {layer.output_path}: {e}") from e

    if not matches:
        discard_download(layer.output_path)
        raise DigestMismatchError(
            f"Downloaded blob {layer.output_path} does not match {layer.digest}"
        )


async def _download_layer(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    transfer: SegmentedTransfer,
    repository: str,
    layer: LayerDescriptor,
    token: BearerToken,
    options: DownloadOptions,
    retry: RetryPolicy,
    verify: bool,
) -> None:
    """Download and verify one layer, retrying according to the retry policy."""
    attempts = max(retry.attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            await download_blob(
                session,
                config,
                transfer,
                repository,
                layer.digest,
                layer.output_path,
                token,
                options,
            )
            if verify:
                _verify_layer(layer)
            return
        except DownloadError as e:
            if attempt >= attempts:
                raise
            logger.warning(
                "Download of %s failed (attempt %d/%d): %s",
                layer.digest,
                attempt,
                attempts,
                e,
            )
            await asyncio.sleep(retry.delay)


async def _fetch_config(
    inspector: ImageInspector, image_reference: str, config_digest: str
) -> bytes:
    config_blob = await get_manifest(
        inspector, image_reference, raw=True, config=True
    )
    if calculate_digest(config_blob) != config_digest:
        raise DigestMismatchError(f"Image config does not match {config_digest}")
    return config_blob


async def _cached_config(
    inspector: ImageInspector,
    cache: ResultCache,
    ttl: float,
    image_reference: str,
    config_digest: str,
) -> bytes:
    """Fetch the image config through the cache; a mismatch is never stored."""
    return await cache.cached_call(
        manifest_cache_key(image_reference, raw=True, config=True),
        ttl,
        lambda: _fetch_config(inspector, image_reference, config_digest),
    )


async def _resolve_platform_manifest(
    inspector: ImageInspector,
    cache: ResultCache,
    ttl: float,
    image_reference: str,
    arch: str,
) -> tuple[str, bytes]:
    """Return the digest and raw bytes of the manifest for ``linux/<arch>``.

    Single-platform images have no index; their raw manifest is used as is.
    """
    raw = await _cached_manifest(inspector, cache, ttl, image_reference, raw=True)
    manifest = load_manifest(raw)
    if not is_manifest_index(manifest):
        return calculate_digest(raw), raw

    digest = select_platform_digest(manifest, arch, PLATFORM_OS)
    logger.info("Platform manifest for %s/%s: %s", PLATFORM_OS, arch, digest)
    platform_manifest = await _cached_manifest(
        inspector,
        cache,
        ttl,
        pinned_reference(image_reference, digest),
        raw=True,
    )
    return digest, platform_manifest


async def _pull(
    session: aiohttp.ClientSession,
    image_reference: str,
    output_dir: Path,
    arch: str,
    config: RegistryConfig,
    options: DownloadOptions,
    cache: ResultCache,
    ttl: float,
    inspector: ImageInspector,
    transfer: SegmentedTransfer,
    retry: RetryPolicy,
    verify: bool,
) -> PullResult:
    logger.info("Starting download of %s", image_reference)
    token = await _cached_token(session, config, cache, ttl, image_reference)

    manifest = await _cached_manifest(
        inspector, cache, ttl, image_reference, arch=arch, os_name=PLATFORM_OS
    )
    repository = parse_repository(image_reference)

    layers = [
        LayerDescriptor(digest=digest, output_path=blob_path(output_dir, digest))
        for digest in extract_layer_digests(load_manifest(manifest))
    ]

    for layer in layers:
        await _download_layer(
            session, config, transfer, repository, layer, token, options, retry, verify
        )
    logger.info("Successfully downloaded %d layers", len(layers))

    manifest_digest, platform_manifest = await _resolve_platform_manifest(
        inspector, cache, ttl, image_reference, arch
    )
    config_digest = extract_config_digest(load_manifest(platform_manifest))
    config_blob = await _cached_config(
        inspector,
        cache,
        ttl,
        pinned_reference(image_reference, manifest_digest),
        config_digest,
    )

    write_manifest(output_dir, platform_manifest)
    write_version_marker(output_dir)
    config_path = write_blob(output_dir, config_digest, config_blob)

    if verify and not validate_dir_layout(output_dir):
        raise DownloadError(f"Output directory {output_dir} is incomplete")

    logger.info("Directory image generated in %s", output_dir)
    logger.info(
        "Load it with: skopeo copy dir:%s docker-daemon:%s", output_dir, image_reference
    )
    return PullResult(
        output_dir=output_dir,
        layers=layers,
        manifest_digest=manifest_digest,
        config_path=config_path,
    )


async def pull_image(
    image_reference: str,
    output_dir: str | Path = DEFAULT_OUTPUT_DIR,
    *,
    arch: str = DEFAULT_ARCH,
    config: RegistryConfig | None = None,
    options: DownloadOptions | None = None,
    cache: ResultCache | None = None,
    ttl: float = DEFAULT_TTL,
    inspector: ImageInspector | None = None,
    transfer: SegmentedTransfer | None = None,
    retry: RetryPolicy | None = None,
    verify: bool = True,
    session: aiohttp.ClientSession | None = None,
) -> PullResult:
    """이미지 레이어를 분할 다운로드하여 디렉토리 형식으로 저장합니다.

    레이어는 매니페스트 순서대로 하나씩 다운로드되며, 각 레이어는 이어받기가
    가능한 분할 전송으로 받습니다. 실패하면 즉시 중단되며, 같은 명령을 다시
    실행하면 이미 받은 부분부터 이어서 다운로드합니다.

    Args:
        image_reference: 이미지 참조 (예: "alpine:latest", "myorg/app:1.0")
        output_dir: 출력 디렉토리 (기본값: "./docker-blobs")
        arch: 대상 아키텍처 (기본값: "amd64", OS는 항상 linux)
        config: 레지스트리 설정 (기본값: Docker Hub)
        options: 분할 전송 옵션 (연결 수, 최소 분할 크기 등)
        cache: 외부 호출 결과 캐시 (기본값: 임시 디렉토리의 shell_cache)
        ttl: 캐시 유효 시간 (초, 기본값: 300초)
        inspector: 매니페스트 조회 도구 (기본값: skopeo)
        transfer: 분할 전송 도구 (기본값: aria2c)
        retry: 레이어별 재시도 정책 (기본값: 재시도 없음)
        verify: 다운로드한 레이어의 digest 검증 여부 (기본값: True, config는 항상 검증)
        session: 재사용할 HTTP 세션 (선택사항)

    Returns:
        PullResult: 출력 디렉토리, 레이어 목록, 매니페스트 digest, config 경로

    Raises:
        AuthError: 토큰 발급 실패 시
        ManifestError: 매니페스트 조회 또는 플랫폼 선택 실패 시
        NoLayersFoundError: 매니페스트에 레이어가 없는 경우
        DownloadError: 레이어 다운로드 또는 검증 실패 시
        CacheWriteError: 캐시 저장 실패 시
        OutputWriteError: 출력 디렉토리에 파일을 쓸 수 없는 경우

    Examples:
        # 기본 옵션으로 다운로드
        result = await pull_image("alpine:latest")

        # arm64 이미지를 4개 연결로 다운로드
        result = await pull_image(
            "alpine:latest",
            "alpine-arm64",
            arch="arm64",
            options=DownloadOptions(connections=4),
        )
        print(f"{len(result.layers)}개 레이어 다운로드 완료")
    """
    config = config or RegistryConfig()
    output_dir = prepare_output_dir(Path(output_dir))

    owns_session = session is None
    if session is None:
        session = await create_session(config)

    try:
        return await _pull(
            session,
            image_reference,
            output_dir,
            arch,
            config,
            options or DownloadOptions(),
            cache if cache is not None else ResultCache(),
            ttl,
            inspector or SkopeoInspector(),
            transfer or Aria2Transfer(),
            retry or RetryPolicy(),
            verify,
        )
    finally:
        if owns_session:
            await session.close()
