"""Core data types for segmented image pulls."""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_REGISTRY = "registry-1.docker.io"
DEFAULT_AUTH_URL = "https://auth.docker.io/token"
DEFAULT_AUTH_SERVICE = "registry.docker.io"


@dataclass(frozen=True)
class RegistryConfig:
    """Registry endpoints and HTTP timeouts."""

    registry: str = DEFAULT_REGISTRY
    scheme: str = "https"
    auth_url: str = DEFAULT_AUTH_URL
    auth_service: str = DEFAULT_AUTH_SERVICE
    connect_timeout: int = 30
    timeout: int = 60

    @property
    def base_url(self) -> str:
        """Registry base URL without trailing slash."""
        return f"{self.scheme}://{self.registry}"


@dataclass(frozen=True)
class DownloadOptions:
    """Segmented transfer options.

    Attributes:
        connections: Number of segments a single blob is split into
        max_connections_per_server: Cap on simultaneous connections per host
        min_split_size: Segments are not split below this size (aria2 notation)
        user_agent: User-Agent header sent to the blob storage backend
    """

    connections: int = 1
    max_connections_per_server: int = 8
    min_split_size: str = "1M"
    user_agent: str = "segmented-image-pull/0.1"


@dataclass(frozen=True)
class RetryPolicy:
    """Per-layer retry policy. One attempt keeps layer failures fatal."""

    attempts: int = 1
    delay: float = 0.0


@dataclass(frozen=True)
class BearerToken:
    """Short-lived registry pull credential."""

    value: str
    scope: str

    @property
    def summary(self) -> str:
        return f"{self.value[:20]}..."


@dataclass(frozen=True)
class LayerDescriptor:
    """A layer blob and the file it is written to."""

    digest: str
    output_path: Path


@dataclass
class PullResult:
    """Outcome of a completed pull."""

    output_dir: Path
    layers: list[LayerDescriptor] = field(default_factory=list)
    manifest_digest: str = ""
    config_path: Path | None = None
