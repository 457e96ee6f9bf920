"""SCORM manifest (imsmanifest.xml) parser.

Reads the organization tree and resource list of a SCORM 1.2 / 2004 package
into plain dataclasses. Namespace URIs and prefixes are dropped from element
and attribute names (``adlcp:scormtype`` becomes ``scormtype``, ``xml:base``
becomes ``base``), and repeatable elements are always lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from package_viewer.security.errors import ScormErrorCode, ScormParseError

logger = logging.getLogger(__name__)


@dataclass
class ManifestResource:
    identifier: Optional[str] = None
    href: Optional[str] = None
    scorm_type: Optional[str] = None
    base: Optional[str] = None
    files: List[str] = field(default_factory=list)


@dataclass
class ManifestItem:
    """A node of the organization tree."""

    identifier: Optional[str] = None
    identifierref: Optional[str] = None
    title: Optional[str] = None
    items: List[ManifestItem] = field(default_factory=list)


@dataclass
class ManifestOrganization:
    identifier: Optional[str] = None
    title: Optional[str] = None
    items: List[ManifestItem] = field(default_factory=list)


@dataclass
class Manifest:
    """Parsed manifest.

    ``organizations`` is None when the ``<organizations>`` element itself is
    missing, and an empty list when it is present but has no children.
    """

    identifier: Optional[str] = None
    schema: Optional[str] = None
    schema_version: Optional[str] = None
    default_organization: Optional[str] = None
    organizations: Optional[List[ManifestOrganization]] = None
    resources_base: Optional[str] = None
    resources: List[ManifestResource] = field(default_factory=list)


def _local_name(name: str) -> str:
    if "}" in name:
        name = name.rsplit("}", 1)[1]
    if ":" in name:
        name = name.rsplit(":", 1)[1]
    return name


def _children(element, tag: str) -> Iterator:
    for child in element:
        if isinstance(child.tag, str) and _local_name(child.tag) == tag:
            yield child


def _child(element, tag: str):
    return next(_children(element, tag), None)


def _attr(element, name: str) -> Optional[str]:
    # Attribute names compare case-insensitively (scormtype vs scormType)
    wanted = name.lower()
    for key, value in element.attrib.items():
        if _local_name(key).lower() == wanted:
            return value
    return None


def _text(element) -> Optional[str]:
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def _parse_items(parent_el) -> List[ManifestItem]:
    # Walked with an explicit stack; item trees can nest arbitrarily deep
    items: List[ManifestItem] = []
    pending = [(parent_el, items)]
    while pending:
        element, siblings = pending.pop()
        for item_el in _children(element, "item"):
            item = ManifestItem(
                identifier=_attr(item_el, "identifier"),
                identifierref=_attr(item_el, "identifierref"),
                title=_text(_child(item_el, "title")),
            )
            siblings.append(item)
            pending.append((item_el, item.items))
    return items


def _parse_organization(org_el) -> ManifestOrganization:
    return ManifestOrganization(
        identifier=_attr(org_el, "identifier"),
        title=_text(_child(org_el, "title")),
        items=_parse_items(org_el),
    )


def _parse_resource(res_el) -> ManifestResource:
    return ManifestResource(
        identifier=_attr(res_el, "identifier"),
        href=_attr(res_el, "href"),
        scorm_type=_attr(res_el, "scormtype"),
        base=_attr(res_el, "base"),
        files=[
            href
            for href in (_attr(f, "href") for f in _children(res_el, "file"))
            if href
        ],
    )


def parse_manifest(xml_bytes: bytes) -> Manifest:
    """
    Parse imsmanifest.xml content.

    Raises:
        ScormParseError: INVALID_MANIFEST when the XML is malformed, uses
            forbidden entity constructs, or the root is not ``<manifest>``.
    """
    try:
        root = DefusedET.fromstring(xml_bytes)
    except (DefusedET.ParseError, DefusedXmlException) as e:
        logger.warning("Rejecting unparseable SCORM manifest: %s", e)
        raise ScormParseError(
            f"Invalid SCORM manifest: {e}", ScormErrorCode.INVALID_MANIFEST
        )

    if _local_name(root.tag) != "manifest":
        raise ScormParseError(
            f"Invalid SCORM manifest: unexpected root element "
            f"<{_local_name(root.tag)}>",
            ScormErrorCode.INVALID_MANIFEST,
        )

    manifest = Manifest(identifier=_attr(root, "identifier"))

    metadata_el = _child(root, "metadata")
    if metadata_el is not None:
        manifest.schema = _text(_child(metadata_el, "schema"))
        manifest.schema_version = _text(_child(metadata_el, "schemaversion"))

    orgs_el = _child(root, "organizations")
    if orgs_el is not None:
        manifest.default_organization = _attr(orgs_el, "default")
        manifest.organizations = [
            _parse_organization(org)
            for org in _children(orgs_el, "organization")
        ]

    resources_el = _child(root, "resources")
    if resources_el is not None:
        manifest.resources_base = _attr(resources_el, "base")
        manifest.resources = [
            _parse_resource(res) for res in _children(resources_el, "resource")
        ]

    return manifest
