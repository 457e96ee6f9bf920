"""
H5P Package Resolver

Turns an uploaded ``.h5p`` archive into an asset map plus descriptive
metadata. Malformed ``h5p.json`` / ``content/content.json`` never fail the
parse; they are treated as absent and the defaults apply.
"""

import json
import logging
import tempfile
from typing import Optional

from package_viewer.models.package import AssetMap, H5PMetadata, ParsedH5P
from package_viewer.security.zip_extractor import ExtractionLimits, extract

logger = logging.getLogger(__name__)

H5P_JSON = "h5p.json"
CONTENT_JSON = "content/content.json"
DEFAULT_TITLE = "H5P Package"

# Checked in order; the first one present in the archive is the entry point
DEFAULT_MAIN_FILES = [
    "content/index.html",
    "content/content.html",
    "content/content.json",
    "h5p.json",
]


def _safe_json_object(data: bytes, path: str) -> Optional[dict]:
    try:
        parsed = json.loads(data.decode("utf-8-sig"))
    except (ValueError, RecursionError) as e:
        logger.warning("Ignoring unparseable %s: %s", path, e)
        return None
    if not isinstance(parsed, dict):
        logger.warning("Ignoring %s: top-level value is not an object", path)
        return None
    return parsed


def _string_field(config: Optional[dict], key: str) -> Optional[str]:
    if config is None:
        return None
    value = config.get(key)
    return value if isinstance(value, str) else None


def resolve_main_file(assets: AssetMap) -> str:
    for candidate in DEFAULT_MAIN_FILES:
        if candidate in assets:
            return candidate
    # Falls back to the conventional entry point even when it is absent
    return next(iter(assets), DEFAULT_MAIN_FILES[0])


def parse_h5p(buffer: bytes, limits: ExtractionLimits = None) -> ParsedH5P:
    """
    Parse an H5P archive.

    Args:
        buffer: Raw ``.h5p`` bytes
        limits: Extraction limits forwarded to the safe extractor

    Returns:
        ParsedH5P with metadata and every file keyed by normalized path

    Raises:
        ZipExtractionError: Propagated unchanged from the extractor
    """
    entries = extract(buffer, tempfile.gettempdir(), limits)
    assets: AssetMap = {entry.path: entry.data for entry in entries}

    h5p_config = None
    content_config = None
    if H5P_JSON in assets:
        h5p_config = _safe_json_object(assets[H5P_JSON], H5P_JSON)
    if CONTENT_JSON in assets:
        content_config = _safe_json_object(assets[CONTENT_JSON], CONTENT_JSON)

    title = _string_field(content_config, "title")
    if title is None:
        title = _string_field(h5p_config, "title")
    if title is None:
        title = DEFAULT_TITLE

    metadata = H5PMetadata(
        title=title,
        main_library=_string_field(h5p_config, "mainLibrary"),
        language=_string_field(h5p_config, "language"),
        main_file=resolve_main_file(assets),
    )
    logger.info(
        "Parsed H5P package %r (%d assets, main file %s)",
        metadata.title,
        len(assets),
        metadata.main_file,
    )
    return ParsedH5P(metadata=metadata, assets=assets)
