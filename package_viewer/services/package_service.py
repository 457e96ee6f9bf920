"""Shared lookup and parsing of stored packages for the HTTP layer."""

import logging
from typing import Optional, Union

from package_viewer.errors import ApiError
from package_viewer.models.package import (
    H5PPackageDetail,
    PackageDetail,
    PackageSummary,
    PackageType,
    ParsedH5P,
    ParsedSCORM,
    ScormPackageDetail,
    ScormPackageMetadata,
)
from package_viewer.parsers.h5p_parser import parse_h5p
from package_viewer.parsers.scorm_parser import parse_scorm
from package_viewer.security.errors import PackageError
from package_viewer.security.zip_extractor import ExtractionLimits
from package_viewer.services.package_type import get_viewer_route
from package_viewer.storage.base import PackageRecord, StorageProvider

logger = logging.getLogger(__name__)


async def load_package(
    storage: StorageProvider,
    package_id: str,
    package_type: Optional[PackageType] = None,
) -> PackageRecord:
    """Fetch a record; a missing or differently-typed package is a 404."""
    record = await storage.get(package_id)
    if record is None or (package_type is not None and record.type != package_type):
        raise ApiError.not_found("Package")
    return record


def parse_package(
    record: PackageRecord, limits: ExtractionLimits
) -> Union[ParsedH5P, ParsedSCORM]:
    try:
        if record.type is PackageType.H5P:
            return parse_h5p(record.file.data, limits)
        return parse_scorm(record.file.data, limits)
    except PackageError as e:
        logger.warning("Package %s failed to parse: %s", record.id, e.message)
        raise ApiError.parse(e.message, details={"code": e.code.value})


def summarize(record: PackageRecord) -> PackageSummary:
    return PackageSummary(
        id=record.id,
        type=record.type,
        filename=record.file.filename,
        size=record.file.size,
        uploadedAt=record.uploaded_at,
        expiresAt=record.expires_at,
        viewerUrl=get_viewer_route(record.type, record.id),
    )


def describe(record: PackageRecord, limits: ExtractionLimits) -> PackageDetail:
    """Summary plus metadata resolved from the archive itself."""
    common = summarize(record).model_dump()
    parsed = parse_package(record, limits)

    if isinstance(parsed, ParsedH5P):
        return H5PPackageDetail(**common, metadata=parsed.metadata)

    return ScormPackageDetail(
        **common,
        metadata=ScormPackageMetadata(
            title=parsed.title,
            version=parsed.version,
            organization=parsed.organization,
            launchFile=parsed.launch_file,
            resourceType=parsed.resource_type,
        ),
    )
