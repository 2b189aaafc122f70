"""Extension → MIME type lookup."""

import mimetypes

DEFAULT_MIME_TYPE = "application/octet-stream"

# Web assets first; anything else goes to the interpreter's built-in table.
MIME_MAP = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".map": "application/json",
    ".webmanifest": "application/manifest+json",
    ".txt": "text/plain",
    ".xml": "text/xml",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".wasm": "application/wasm",
    ".pdf": "application/pdf",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
}

# A MimeTypes instance answers from the built-in defaults only, not from
# /etc/mime.types, so lookups are identical on every machine.
_builtin = mimetypes.MimeTypes()


def mime_type_for(path: str) -> str:
    """Return the MIME type for a file name or URL path."""
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0:
        return DEFAULT_MIME_TYPE
    ext = name[dot:].lower()
    if ext in MIME_MAP:
        return MIME_MAP[ext]
    guessed, _ = _builtin.guess_type("file" + ext, strict=False)
    return guessed or DEFAULT_MIME_TYPE
