"""
Asset delivery helpers

Maps viewer asset requests onto keys of a package's asset map and decides how
the matched bytes are served (content type, headers, SCORM shim injection).
"""

import mimetypes
import posixpath
import re
from typing import Mapping, Optional
from urllib.parse import unquote

CONTENT_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".htm": "text/html; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; script-src 'self' 'unsafe-inline'; "
    "style-src 'self' 'unsafe-inline'; img-src 'self' data:; font-src 'self'"
)

PREVIEW_HEADERS = {
    "Cache-Control": "no-store",
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
}

HTML_EXTENSIONS = {".html", ".htm"}

_HEAD_CLOSE = re.compile(r"</head>", re.IGNORECASE)


def get_extension(path: str) -> str:
    index = path.rfind(".")
    if index < 0 or "/" in path[index:]:
        return ""
    return path[index:].lower()


def content_type_for(path: str) -> str:
    extension = get_extension(path)
    if extension in CONTENT_TYPES:
        return CONTENT_TYPES[extension]
    guessed, _ = mimetypes.guess_type(path)
    return guessed or DEFAULT_CONTENT_TYPE


def is_html(path: str) -> bool:
    return get_extension(path) in HTML_EXTENSIONS


def normalize_asset_key(path: str) -> str:
    """Backslashes to ``/``; a leading ``/`` means archive-root-relative."""
    return path.replace("\\", "/").lstrip("/")


def collapse_path(path: str) -> str:
    """Collapse ``.`` and ``..`` segments; excess ``..`` stop at the root."""
    parts = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)


def strip_query(href: str) -> str:
    """Drop query string and fragment from a manifest href and unescape it."""
    path = href.split("#", 1)[0].split("?", 1)[0]
    return unquote(path)


def resolve_asset_path(
    requested: Optional[str], main_file: str, assets: Mapping[str, bytes]
) -> str:
    """
    Map a viewer request onto an asset key.

    Args:
        requested: Path from the request, or None/"" for the entry point
        main_file: Package entry point (H5P main file or SCORM launch file)
        assets: Package asset map

    Returns:
        The key to look up. A miss on lookup is the caller's 404.
    """
    if not requested:
        return normalize_asset_key(main_file)

    normalized = requested.replace("\\", "/")
    root_relative = normalized.startswith("/")
    key = normalize_asset_key(normalized)
    if key in assets:
        return key
    if root_relative:
        return key

    base_dir = posixpath.dirname(normalize_asset_key(main_file))
    return collapse_path(posixpath.join(base_dir, key) if base_dir else key)


def inject_shim(html: str, script: str) -> str:
    """Insert ``<script>`` before the first ``</head>``, else prepend it."""
    tag = f"<script>{script}</script>"
    if _HEAD_CLOSE.search(html):
        return _HEAD_CLOSE.sub(lambda match: tag + match.group(0), html, count=1)
    return tag + html
