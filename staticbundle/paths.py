"""URL path normalization shared by the builder, registry and server."""

from typing import List
from urllib.parse import unquote

from staticbundle.errors import InvalidPathError


def _check_segments(key: str, candidate: str) -> None:
    if candidate.startswith("/"):
        raise InvalidPathError(key, "absolute path")
    if "\\" in candidate:
        raise InvalidPathError(key, "backslash in path")
    if "\x00" in candidate:
        raise InvalidPathError(key, "NUL byte in path")
    for segment in candidate.split("/"):
        if segment in ("", ".", ".."):
            raise InvalidPathError(key, f"segment {segment!r} not allowed")


def check_resource_key(path: str) -> str:
    """Validate a registry key: relative, ``/``-separated, no dot segments.

    The key is checked both as written and percent-decoded, so it cannot
    escape the mount point either way. Returns the key unchanged so it can be
    used inline.
    """
    if not path:
        raise InvalidPathError(path, "empty path")
    _check_segments(path, path)
    _check_segments(path, unquote(path))
    try:
        path.encode("utf-8")
    except UnicodeEncodeError:
        raise InvalidPathError(path, "not representable as UTF-8") from None
    return path


def reject_traversal(path: str) -> None:
    """Raise if any segment of a request path is ``..``."""
    if ".." in path.replace("\\", "/").split("/"):
        raise InvalidPathError(path, "path traversal")


def normalize_request_path(path: str) -> str:
    """Normalize a (decoded) request path for a second registry lookup.

    Empty segments are dropped; segments that start with ``.`` or ``*``, end
    with ``:``, ``<`` or ``>``, or contain a backslash are rejected.
    """
    reject_traversal(path)
    parts: List[str] = []
    for segment in path.split("/"):
        if not segment:
            continue
        if segment.startswith((".", "*")):
            raise InvalidPathError(path, f"segment starts with {segment[0]!r}")
        if segment.endswith((":", "<", ">")):
            raise InvalidPathError(path, f"segment ends with {segment[-1]!r}")
        if "\\" in segment:
            raise InvalidPathError(path, "backslash in segment")
        parts.append(segment)
    return "/".join(parts)
