"""Shared fixtures: a sample site on disk and a synthetic registry."""

import pytest

from staticbundle.registry import ResourceRegistry
from staticbundle.schemas import Resource

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01"

SITE_FILES = {
    "index.html": b"<!doctype html><html><body><div id=app></div></body></html>",
    "app.js": b"console.log('app');\n",
    "css/site.css": b"body { margin: 0; }\n",
    "img/logo.png": PNG_BYTES,
    "docs/index.html": b"<html><body>docs</body></html>",
    "docs/guide.txt": b"read me\n",
    ".well-known/security.txt": b"Contact: mailto:security@example.com\n",
    "LICENSE": b"MIT\n",
}


@pytest.fixture
def site(tmp_path):
    root = tmp_path / "site"
    for rel, data in SITE_FILES.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return root


@pytest.fixture
def registry():
    return ResourceRegistry(Resource.from_bytes(path, data) for path, data in SITE_FILES.items())
