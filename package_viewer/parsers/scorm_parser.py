"""
SCORM Package Resolver

Locates and reads ``imsmanifest.xml``, follows the default organization down
to its first launchable item and resolves the resource that item points at.
"""

import logging
import tempfile
from typing import List, Optional

from package_viewer.models.package import AssetMap, ParsedSCORM, ScormVersion
from package_viewer.parsers.scorm_manifest import (
    Manifest,
    ManifestItem,
    ManifestOrganization,
    ManifestResource,
    parse_manifest,
)
from package_viewer.security.errors import ScormErrorCode, ScormParseError
from package_viewer.security.zip_extractor import ExtractionLimits, extract
from package_viewer.services.assets import collapse_path, strip_query

logger = logging.getLogger(__name__)

MANIFEST_NAME = "imsmanifest.xml"
DEFAULT_TITLE = "SCORM Package"


def find_manifest_path(paths: List[str]) -> Optional[str]:
    """Shallowest ``imsmanifest.xml`` in the archive (first one on ties)."""
    candidates = [
        path
        for path in paths
        if path.lower() == MANIFEST_NAME or path.lower().endswith("/" + MANIFEST_NAME)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda path: path.count("/"))


def manifest_base_path(manifest_path: str) -> str:
    index = manifest_path.rfind("/")
    return manifest_path[: index + 1] if index >= 0 else ""


def detect_version(manifest: Manifest) -> ScormVersion:
    schema = (manifest.schema or "").lower()
    version = (manifest.schema_version or "").lower()
    if "scorm 2004" in schema or version.startswith("2004"):
        return "2004"
    if "adl scorm" in schema or "1.2" in version:
        return "1.2"
    return "unknown"


def select_organization(manifest: Manifest) -> Optional[ManifestOrganization]:
    organizations = manifest.organizations or []
    for organization in organizations:
        if (
            manifest.default_organization is not None
            and organization.identifier == manifest.default_organization
        ):
            return organization
    return organizations[0] if organizations else None


def find_launch_item(
    organization: Optional[ManifestOrganization],
) -> Optional[ManifestItem]:
    """Follow first children down from the organization's first item."""
    if organization is None or not organization.items:
        return None
    item = organization.items[0]
    while item.items:
        item = item.items[0]
    return item


def _join_base(prefix: str, base: Optional[str]) -> str:
    if not base:
        return prefix
    base = base.replace("\\", "/").lstrip("/")
    if base and not base.endswith("/"):
        base += "/"
    return prefix + base


def _find_resource(
    manifest: Manifest, identifier: str
) -> Optional[ManifestResource]:
    for resource in manifest.resources:
        if resource.identifier == identifier:
            return resource
    return None


def parse_scorm(buffer: bytes, limits: ExtractionLimits = None) -> ParsedSCORM:
    """
    Parse a SCORM archive.

    Args:
        buffer: Raw ``.zip`` bytes
        limits: Extraction limits forwarded to the safe extractor

    Returns:
        ParsedSCORM with launch information and the full asset map

    Raises:
        ZipExtractionError: Propagated unchanged from the extractor
        ScormParseError: When the manifest is missing or cannot be resolved
            to a launch file present in the archive
    """
    entries = extract(buffer, tempfile.gettempdir(), limits)
    assets: AssetMap = {entry.path: entry.data for entry in entries}

    manifest_path = find_manifest_path(list(assets))
    if manifest_path is None:
        raise ScormParseError(
            "SCORM package missing imsmanifest.xml",
            ScormErrorCode.MANIFEST_MISSING,
        )

    manifest = parse_manifest(assets[manifest_path])
    if manifest.organizations is None:
        raise ScormParseError(
            "Invalid SCORM manifest: missing <organizations> element",
            ScormErrorCode.INVALID_MANIFEST,
        )

    organization = select_organization(manifest)
    launch_item = find_launch_item(organization)
    if launch_item is None or not launch_item.identifierref:
        raise ScormParseError(
            "Manifest missing launch item",
            ScormErrorCode.MANIFEST_MISSING_LAUNCH_ITEM,
        )

    resource = _find_resource(manifest, launch_item.identifierref)
    if resource is None or not resource.href:
        raise ScormParseError(
            "Manifest resource missing href",
            ScormErrorCode.RESOURCE_MISSING_HREF,
        )

    base_path = manifest_base_path(manifest_path)
    prefix = _join_base(_join_base(base_path, manifest.resources_base), resource.base)
    launch_file = prefix + resource.href.replace("\\", "/").lstrip("/")

    if collapse_path(strip_query(launch_file)) not in assets:
        logger.warning(
            "SCORM launch file %s referenced by %s is not in the archive",
            launch_file,
            manifest_path,
        )
        raise ScormParseError(
            f'Launch file "{launch_file}" not found in package',
            ScormErrorCode.LAUNCH_FILE_MISSING,
        )

    title = launch_item.title or (organization.title if organization else None)

    parsed = ParsedSCORM(
        title=title or DEFAULT_TITLE,
        version=detect_version(manifest),
        launch_file=launch_file,
        organization=organization.title if organization else None,
        base_path=base_path,
        manifest_path=manifest_path,
        resource_type=resource.scorm_type,
        assets=assets,
    )
    logger.info(
        "Parsed SCORM %s package %r (launch %s)",
        parsed.version,
        parsed.title,
        parsed.launch_file,
    )
    return parsed
