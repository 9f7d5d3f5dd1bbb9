"""Segmented Image Pull - resumable, segmented container image downloads."""

__version__ = "0.1.0"

from .core.cache import ResultCache
from .core.types import (
    BearerToken,
    DownloadOptions,
    LayerDescriptor,
    PullResult,
    RegistryConfig,
    RetryPolicy,
)
from .exceptions import (
    AuthError,
    CacheWriteError,
    DownloadError,
    ManifestError,
    NoLayersFoundError,
    OutputWriteError,
    RegistryConnectionError,
    RegistryError,
)
from .pull import pull_image

__all__ = [
    "pull_image",
    "ResultCache",
    "RegistryConfig",
    "DownloadOptions",
    "RetryPolicy",
    "BearerToken",
    "LayerDescriptor",
    "PullResult",
    "RegistryError",
    "RegistryConnectionError",
    "AuthError",
    "ManifestError",
    "NoLayersFoundError",
    "DownloadError",
    "CacheWriteError",
    "OutputWriteError",
]
