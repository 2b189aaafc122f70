"""ASGI application serving a resource registry.

``ResourceFiles`` is mounted like Starlette's ``StaticFiles``::

    app.include_router(api.router)
    app.mount("/", ResourceFiles(registry, fallback_to_root=True))

The mount must come after every explicit route: with fallback enabled it
answers any path it does not know with the root document.
"""

from typing import Mapping, Optional

from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse, Response
from starlette.types import Receive, Scope, Send

from staticbundle.errors import InvalidPathError
from staticbundle.paths import normalize_request_path, reject_traversal
from staticbundle.schemas import Resource

INDEX_HTML = "index.html"
ALLOWED_METHODS = ("GET", "HEAD")


def route_path(scope: Scope) -> str:
    """Request path relative to the mount point (``root_path``)."""
    path = scope["path"]
    root_path = scope.get("root_path", "")
    if not root_path or not path.startswith(root_path):
        return path
    if path == root_path:
        return ""
    if path[len(root_path)] == "/":
        return path[len(root_path):]
    return path


def _parse_etags(value: str):
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def _opaque(tag: str) -> str:
    return tag[2:] if tag.startswith("W/") else tag


def any_match(etag: str, headers: Headers) -> bool:
    """True if there is no ``If-Match`` header or one strongly matching ``etag``."""
    value = headers.get("if-match")
    if value is None:
        return True
    tags = _parse_etags(value)
    if "*" in tags:
        return True
    return any(not tag.startswith("W/") and tag == etag for tag in tags)


def none_match(etag: str, headers: Headers) -> bool:
    """True if there is no ``If-None-Match`` header weakly matching ``etag``."""
    value = headers.get("if-none-match")
    if value is None:
        return True
    tags = _parse_etags(value)
    if "*" in tags:
        return False
    return all(_opaque(tag) != _opaque(etag) for tag in tags)


def respond_to(method: str, headers: Headers, resource: Optional[Resource]) -> Response:
    if resource is None:
        return PlainTextResponse("Not found", status_code=404)

    if method not in ALLOWED_METHODS:
        return PlainTextResponse(
            "This resource only supports GET and HEAD.",
            status_code=405,
            headers={"Allow": ", ".join(ALLOWED_METHODS)},
        )

    if not any_match(resource.etag, headers):
        return Response(status_code=412, headers={"ETag": resource.etag})
    if not none_match(resource.etag, headers):
        return Response(status_code=304, headers={"ETag": resource.etag})

    response_headers = {
        "Content-Type": resource.mime_type,
        "Content-Length": str(resource.size),
        "ETag": resource.etag,
    }
    body = b"" if method == "HEAD" else resource.data
    return Response(content=body, status_code=200, headers=response_headers)


class ResourceFiles:
    """Serve embedded resources with ETag validation and optional SPA fallback.

    Args:
        resources: Any read-only mapping of normalized path → Resource,
            usually a ``ResourceRegistry``.
        resolve_defaults: Resolve ``dir/`` (and the mount root) to
            ``dir/index.html`` when that resource exists.
        not_found_resolves_to: Path served for unknown GET/HEAD requests.
        fallback_to_root: Shorthand for ``not_found_resolves_to=index_file``.
        index_file: Name of the default and root document.
    """

    def __init__(
        self,
        resources: Mapping[str, Resource],
        *,
        resolve_defaults: bool = True,
        not_found_resolves_to: Optional[str] = None,
        fallback_to_root: bool = False,
        index_file: str = INDEX_HTML,
    ):
        self.files = resources
        self.resolve_defaults = resolve_defaults
        self.index_file = index_file
        if not_found_resolves_to is None and fallback_to_root:
            not_found_resolves_to = index_file
        self.not_found_resolves_to = not_found_resolves_to

    def lookup(self, req_path: str) -> Optional[Resource]:
        """Resolve a decoded, mount-relative path to a resource.

        Raises InvalidPathError for traversal and other unsafe segments.
        """
        reject_traversal(req_path)
        key = req_path.lstrip("/")

        item = self.files.get(key)
        if item is None and self.resolve_defaults and (key == "" or key.endswith("/")):
            item = self.files.get(key + self.index_file)
        if item is None:
            real_path = normalize_request_path(key)
            if real_path != key:
                item = self.files.get(real_path)
        return item

    def fallback(self) -> Optional[Resource]:
        if self.not_found_resolves_to is None:
            return None
        return self.files.get(self.not_found_resolves_to)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        assert scope["type"] == "http"
        response = self.get_response(scope)
        await response(scope, receive, send)

    def get_response(self, scope: Scope) -> Response:
        method = scope["method"]
        headers = Headers(scope=scope)
        try:
            item = self.lookup(route_path(scope))
        except InvalidPathError:
            return PlainTextResponse("Bad request", status_code=400)

        if item is None and method in ALLOWED_METHODS:
            item = self.fallback()
        return respond_to(method, headers, item)
