"""Image reference parsing."""

DEFAULT_NAMESPACE = "library"


def strip_reference_suffix(image_reference: str) -> str:
    """Drop the ``:tag`` and ``@digest`` suffixes from an image reference.

    Examples:
        >>> strip_reference_suffix("alpine:latest")
        'alpine'
        >>> strip_reference_suffix("myorg/app@sha256:abc")
        'myorg/app'
    """
    name = image_reference.split("@", 1)[0]
    last_slash = name.rfind("/")
    colon = name.find(":", last_slash + 1)
    if colon != -1:
        name = name[:colon]
    return name


def parse_repository(image_reference: str) -> str:
    """Return the registry repository path for an image reference.

    Bare names live in the implicit ``library`` namespace.
    """
    name = strip_reference_suffix(image_reference)
    if "/" not in name:
        return f"{DEFAULT_NAMESPACE}/{name}"
    return name


def pull_scope(image_reference: str) -> str:
    """Token scope granting pull access to the reference's repository."""
    return f"repository:{parse_repository(image_reference)}:pull"


def pinned_reference(image_reference: str, digest: str) -> str:
    """Build ``<name>@<digest>`` from a tagged or digested reference."""
    return f"{strip_reference_suffix(image_reference)}@{digest}"
