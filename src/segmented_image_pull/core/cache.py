"""Time-bounded on-disk cache for expensive external calls."""

import hashlib
import logging
import os
import tempfile
import time
from contextlib import suppress
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

from ..exceptions import CacheWriteError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CACHE_DIR = Path(tempfile.gettempdir()) / "shell_cache"
DEFAULT_TTL = 300
CACHE_TEMP_SUFFIX = ".tmp"


def _identity(value):
    return value


def cache_slot_name(key: str) -> str:
    """Return the file name holding the entry for ``key``."""
    return hashlib.md5(key.encode("utf-8")).hexdigest()


class ResultCache:
    """Memoize external call results on disk for a bounded time window.

    Entries are plain files named after the MD5 of their key; the file mtime
    is the write timestamp. Freshness is evaluated at read time against the
    TTL supplied by the caller, so callers may apply different windows to
    different keys.

    No cross-process locking is done. Two concurrent misses on the same key
    both run the call and both write the slot; the last rename wins. Writes
    go through a temporary file and ``os.replace`` so a reader never sees a
    partial entry.
    """

    def __init__(
        self,
        directory: Path = DEFAULT_CACHE_DIR,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache handle.

        Args:
            directory: Directory holding cache entries, created on first write
            enabled: When False every call bypasses the cache
            clock: Time source used for freshness checks
        """
        self.directory = Path(directory)
        self.enabled = enabled
        self.clock = clock

    def slot_path(self, key: str) -> Path:
        return self.directory / cache_slot_name(key)

    def read(self, key: str, ttl: float) -> bytes | None:
        """Return the payload for ``key`` if younger than ``ttl`` seconds."""
        path = self.slot_path(key)
        try:
            written_at = path.stat().st_mtime
        except FileNotFoundError:
            return None

        if self.clock() - written_at >= ttl:
            return None

        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, key: str, payload: bytes) -> None:
        """Persist ``payload`` for ``key`` atomically.

        Raises:
            CacheWriteError: If the entry cannot be written. Any previous
                entry for the key is left in place.
        """
        path = self.slot_path(key)
        temp_name: str | None = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=self.directory,
                prefix=f"{path.name}.",
                suffix=CACHE_TEMP_SUFFIX,
                delete=False,
            ) as handle:
                temp_name = handle.name
                handle.write(payload)
            os.replace(temp_name, path)
        except OSError as e:
            if temp_name:
                with suppress(FileNotFoundError):
                    Path(temp_name).unlink()
            raise CacheWriteError(f"Failed to write cache entry for {key}: {e}") from e

    async def cached_call(
        self,
        key: str,
        ttl: float,
        call: Callable[[], Awaitable[T]],
        *,
        encode: Callable[[T], bytes] | None = None,
        decode: Callable[[bytes], T] | None = None,
    ) -> T:
        """Return a fresh cached result for ``key`` or run ``call`` and store it.

        Args:
            key: Opaque identifier of the call, including every parameter
                that changes its result
            ttl: Maximum entry age in seconds
            call: Coroutine function producing the value
            encode: Converts the value to bytes before storing (default: identity)
            decode: Converts stored bytes back to the value (default: identity)

        Returns:
            The cached or freshly computed value

        Raises:
            CacheWriteError: If the fresh value cannot be persisted
            Exception: Whatever ``call`` raises; failures are never cached
        """
        encode = encode or _identity
        decode = decode or _identity

        if not self.enabled:
            return await call()

        payload = self.read(key, ttl)
        if payload is not None:
            logger.info("Using cache for %s", key)
            return decode(payload)

        value = await call()
        self.write(key, encode(value))
        logger.info("Cached %s", key)
        return value
