"""Docker Hub ``library/`` namespace rewriting.

Docker Hub stores official images under the implicit ``library``
namespace: ``busybox`` is really ``library/busybox``. Clients may send the
short form, but the token server validates scopes against the qualified
name, so both scopes and resource paths are rewritten.
"""

from typing import Optional

LIBRARY_NAMESPACE = "library"

_LIBRARY_RESOURCES = ("manifests", "blobs")


def normalize_scope(scope: str, is_docker_hub: bool) -> str:
    """Qualify an unqualified Docker Hub scope with ``library/``.

    ``repository:busybox:pull`` becomes ``repository:library/busybox:pull``.
    Scopes that are already qualified, malformed, or aimed at another
    registry are returned unchanged.
    """
    if not is_docker_hub:
        return scope

    parts = scope.split(":")
    if len(parts) != 3 or "/" in parts[1]:
        return scope

    parts[1] = f"{LIBRARY_NAMESPACE}/{parts[1]}"
    return ":".join(parts)


def library_redirect_path(path: str) -> Optional[str]:
    """Return the ``library/`` qualified path for an unqualified image.

    ``/v2/busybox/manifests/latest`` becomes
    ``/v2/library/busybox/manifests/latest``. Returns None when the path
    is not an unqualified manifest or blob path.
    """
    segments = path.split("/")
    # ["", "v2", name, "manifests" | "blobs", reference]
    if len(segments) != 5:
        return None
    if segments[1] != "v2" or segments[3] not in _LIBRARY_RESOURCES:
        return None
    if not segments[2] or not segments[4]:
        return None

    segments.insert(2, LIBRARY_NAMESPACE)
    return "/".join(segments)
