"""Test doubles for the registry, the image inspector and the transfer tool."""

import json
from pathlib import Path

from aiohttp import web

from segmented_image_pull.core.types import DownloadOptions
from segmented_image_pull.exceptions import InspectorError, TransferError
from segmented_image_pull.utils.digest import calculate_digest
from segmented_image_pull.utils.reference import strip_reference_suffix

LAYER_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar.gzip"
CONFIG_MEDIA_TYPE = "application/vnd.docker.container.image.v1+json"
MANIFEST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"
INDEX_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.list.v2+json"


class FakeImage:
    """Synthetic image with consistent digests across all documents.

    Only ``arch`` is backed by real content; the other index entries point
    at placeholder digests.
    """

    def __init__(
        self,
        reference: str = "alpine:latest",
        layer_contents: tuple[bytes, ...] = (b"layer one data", b"layer two data"),
        arch: str = "amd64",
        index_archs: tuple[str, ...] = ("amd64", "arm64"),
        with_index: bool = True,
    ) -> None:
        self.reference = reference
        self.name = strip_reference_suffix(reference)
        self.arch = arch
        self.layers = {calculate_digest(content): content for content in layer_contents}
        self.layer_digests = list(self.layers)

        self.config = json.dumps(
            {
                "architecture": arch,
                "os": "linux",
                "rootfs": {"type": "layers", "diff_ids": self.layer_digests},
            }
        ).encode("utf-8")
        self.config_digest = calculate_digest(self.config)

        self.platform_manifest = json.dumps(
            {
                "schemaVersion": 2,
                "mediaType": MANIFEST_MEDIA_TYPE,
                "config": {
                    "mediaType": CONFIG_MEDIA_TYPE,
                    "size": len(self.config),
                    "digest": self.config_digest,
                },
                "layers": [
                    {"mediaType": LAYER_MEDIA_TYPE, "size": len(content), "digest": digest}
                    for digest, content in self.layers.items()
                ],
            },
            indent=3,
        ).encode("utf-8")
        self.platform_digest = calculate_digest(self.platform_manifest)

        self.index = json.dumps(
            {
                "schemaVersion": 2,
                "mediaType": INDEX_MEDIA_TYPE,
                "manifests": [
                    {
                        "mediaType": MANIFEST_MEDIA_TYPE,
                        "digest": self.digest_for(index_arch),
                        "platform": {"architecture": index_arch, "os": "linux"},
                    }
                    for index_arch in index_archs
                ],
            }
        ).encode("utf-8")
        self.with_index = with_index

        self.normalized = json.dumps(
            {
                "Name": f"docker.io/{self.name}",
                "Digest": calculate_digest(self.index),
                "Architecture": arch,
                "Os": "linux",
                "Layers": self.layer_digests,
            }
        ).encode("utf-8")

    def digest_for(self, arch: str) -> str:
        if arch == self.arch:
            return self.platform_digest
        return calculate_digest(f"placeholder-{arch}".encode("utf-8"))

    @property
    def pinned(self) -> str:
        return f"{self.name}@{self.platform_digest}"

    def documents(self) -> dict[tuple[str, bool, bool], bytes]:
        """Inspector outputs keyed by (reference, raw, config)."""
        if not self.with_index:
            return {
                (self.reference, False, False): self.normalized,
                (self.reference, True, False): self.platform_manifest,
                (self.pinned, True, True): self.config,
            }
        return {
            (self.reference, False, False): self.normalized,
            (self.reference, True, False): self.index,
            (self.pinned, True, False): self.platform_manifest,
            (self.pinned, True, True): self.config,
        }


class FakeInspector:
    """In-memory stand-in for skopeo inspect."""

    def __init__(self, documents: dict[tuple[str, bool, bool], bytes] | None = None):
        self.documents = dict(documents or {})
        self.calls: list[dict] = []

    async def inspect(
        self,
        image_reference: str,
        raw: bool = False,
        config: bool = False,
        arch: str | None = None,
        os_name: str | None = None,
    ) -> bytes:
        self.calls.append(
            {
                "reference": image_reference,
                "raw": raw,
                "config": config,
                "arch": arch,
                "os_name": os_name,
            }
        )
        try:
            return self.documents[(image_reference, raw, config)]
        except KeyError:
            raise InspectorError(f"manifest unknown: {image_reference}") from None


class FakeTransfer:
    """Writes blob content picked by the digest at the end of the URL."""

    def __init__(
        self,
        blobs: dict[str, bytes],
        fail_digests: dict[str, int] | None = None,
        corrupt_digests: dict[str, int] | None = None,
    ):
        self.blobs = blobs
        # digest -> number of attempts that fail before succeeding
        self.fail_digests = dict(fail_digests or {})
        # digest -> number of attempts that write same-size garbage
        self.corrupt_digests = dict(corrupt_digests or {})
        self.calls: list[tuple[str, Path, dict[str, str]]] = []

    async def fetch(
        self,
        url: str,
        output_path: Path,
        options: DownloadOptions,
        headers: dict[str, str] | None = None,
    ) -> None:
        digest = url.rsplit("/", 1)[-1]
        self.calls.append((url, output_path, dict(headers or {})))
        if self.fail_digests.get(digest, 0) > 0:
            self.fail_digests[digest] -= 1
            raise TransferError(f"aria2c failed for {digest}")
        if self.corrupt_digests.get(digest, 0) > 0:
            self.corrupt_digests[digest] -= 1
            output_path.write_bytes(b"\0" * len(self.blobs[digest]))
            return
        output_path.write_bytes(self.blobs[digest])

    @property
    def fetched_digests(self) -> list[str]:
        return [url.rsplit("/", 1)[-1] for url, _, _ in self.calls]


class ResumingTransfer(FakeTransfer):
    """Leaves full-size files untouched, like aria2c with --continue."""

    def __init__(self, blobs: dict[str, bytes], **kwargs):
        super().__init__(blobs, **kwargs)
        self.skipped: list[Path] = []

    async def fetch(
        self,
        url: str,
        output_path: Path,
        options: DownloadOptions,
        headers: dict[str, str] | None = None,
    ) -> None:
        digest = url.rsplit("/", 1)[-1]
        if output_path.is_file() and output_path.stat().st_size == len(self.blobs[digest]):
            self.calls.append((url, output_path, dict(headers or {})))
            self.skipped.append(output_path)
            return
        await super().fetch(url, output_path, options, headers)


class FakeRegistry:
    """aiohttp application emulating the token service and blob redirects."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.token_response: object = {"token": "test-token-0123456789abcdef"}
        self.token_status = 200
        self.redirect = True
        self.token_requests: list[dict[str, str]] = []
        self.head_requests: list[dict[str, str]] = []
        self.server = None

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/token", self.handle_token)
        app.router.add_route(
            "HEAD", "/v2/{repository:.+}/blobs/{digest}", self.handle_blob_head
        )
        app.router.add_get("/storage/{digest}", self.handle_storage)
        return app

    async def handle_token(self, request: web.Request) -> web.Response:
        self.token_requests.append(dict(request.query))
        if isinstance(self.token_response, (str, bytes)):
            body = self.token_response
            if isinstance(body, str):
                body = body.encode("utf-8")
            return web.Response(body=body, status=self.token_status)
        return web.json_response(self.token_response, status=self.token_status)

    async def handle_blob_head(self, request: web.Request) -> web.Response:
        digest = request.match_info["digest"]
        self.head_requests.append(
            {
                "repository": request.match_info["repository"],
                "digest": digest,
                "authorization": request.headers.get("Authorization", ""),
            }
        )
        if digest not in self.blobs:
            return web.Response(status=404)
        if not self.redirect:
            return web.Response(status=200)
        return web.Response(status=307, headers={"Location": f"/storage/{digest}"})

    async def handle_storage(self, request: web.Request) -> web.Response:
        return web.Response(body=self.blobs[request.match_info["digest"]])
