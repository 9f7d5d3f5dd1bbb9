"""Custom exceptions for segmented image pulls."""


class RegistryError(Exception):
    """Base exception for all registry-related errors."""

    pass


class RegistryConnectionError(RegistryError):
    """Raised when unable to connect to the registry."""

    pass


class AuthError(RegistryError):
    """Raised when a pull token cannot be obtained."""

    pass


class AuthConnectionError(AuthError, RegistryConnectionError):
    """Raised when the token endpoint produced no response."""

    pass


class AuthServiceError(AuthError):
    """Raised when the token endpoint reports an error."""

    pass


class TokenMissingError(AuthError):
    """Raised when the token response carries neither token field."""

    pass


class ManifestError(RegistryError):
    """Raised when manifest operations fail."""

    pass


class EmptyManifestError(ManifestError):
    """Raised when the inspector returned no output."""

    pass


class InvalidManifestError(ManifestError):
    """Raised when the inspector output is not well-formed JSON."""

    pass


class InspectorError(ManifestError):
    """Raised when the image inspector exits with a failure."""

    pass


class PlatformNotFoundError(ManifestError):
    """Raised when a manifest index has no entry for the requested platform."""

    pass


class InvalidDigestError(ManifestError, ValueError):
    """Raised when a digest is not a valid ``algorithm:hex`` string."""

    pass


class NoLayersFoundError(RegistryError):
    """Raised when the image manifest lists no layers."""

    pass


class DownloadError(RegistryError):
    """Raised when blob download fails."""

    pass


class RedirectResolutionError(DownloadError):
    """Raised when the blob redirect cannot be resolved."""

    pass


class TransferError(DownloadError):
    """Raised when the segmented transfer fails."""

    pass


class DigestMismatchError(DownloadError):
    """Raised when a downloaded file does not match its digest."""

    pass


class CacheWriteError(RegistryError):
    """Raised when a cache entry cannot be persisted."""

    pass


class OutputWriteError(RegistryError):
    """Raised when a file in the output directory cannot be written."""

    pass
