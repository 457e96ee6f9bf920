"""
Package Type Classifier

Two independent strategies: one looks at the upload's filename (or an explicit
override), the other inspects the archive's entry names. Neither consults the
other.
"""

import io
import logging
import zipfile
from typing import Iterable, Optional, Tuple, Union

from package_viewer.models.package import PackageType, PackageValidationResult
from package_viewer.security.file_validator import get_file_extension

logger = logging.getLogger(__name__)

SCORM_MANIFEST = "imsmanifest.xml"
H5P_CONFIG = "h5p.json"

EXTENSION_TO_TYPE = {
    ".h5p": PackageType.H5P,
    ".zip": PackageType.SCORM,
}

AUTO = "auto"


def classify_by_extension(
    filename: str, override: Optional[str] = None
) -> Optional[PackageType]:
    """Explicit ``h5p``/``scorm`` override wins, otherwise the extension decides."""
    if override in (PackageType.H5P.value, PackageType.SCORM.value):
        return PackageType(override)
    return EXTENSION_TO_TYPE.get(get_file_extension(filename or ""))


def _has_file(names: Iterable[str], target: str) -> bool:
    return any(name == target or name.endswith("/" + target) for name in names)


def content_signals(names: Iterable[str]) -> Tuple[bool, bool]:
    """Return ``(has_h5p_config, has_scorm_manifest)`` for a list of entry names."""
    normalized = [name.replace("\\", "/").lower() for name in names]
    return _has_file(normalized, H5P_CONFIG), _has_file(normalized, SCORM_MANIFEST)


def classify_by_contents(
    buffer: bytes, expected: Union[PackageType, str] = AUTO
) -> PackageValidationResult:
    """
    Decide the package type from archive entry names.

    Only the central directory is read; nothing is decompressed. Every failure
    is reported in the result, never raised.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(buffer)) as archive:
            names = archive.namelist()
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as e:
        reason = str(e) or "unable to read ZIP file"
        logger.info("Content classification failed: %s", reason)
        return PackageValidationResult.fail(f"Invalid archive: {reason}.")

    has_h5p, has_scorm = content_signals(names)

    if expected == PackageType.SCORM:
        if not has_scorm:
            return PackageValidationResult.fail(
                "Invalid SCORM package: missing imsmanifest.xml file."
            )
        return PackageValidationResult.ok(PackageType.SCORM)

    if expected == PackageType.H5P:
        if not has_h5p:
            return PackageValidationResult.fail(
                "Invalid H5P package: missing h5p.json file."
            )
        return PackageValidationResult.ok(PackageType.H5P)

    if has_h5p:
        return PackageValidationResult.ok(PackageType.H5P)
    if has_scorm:
        return PackageValidationResult.ok(PackageType.SCORM)

    return PackageValidationResult.fail(
        "Invalid package: missing required files. SCORM packages need "
        "imsmanifest.xml, H5P packages need h5p.json."
    )


def get_viewer_route(package_type: PackageType, package_id: str) -> str:
    if package_type is PackageType.H5P:
        return f"/h5p/{package_id}"
    return f"/scorm/{package_id}"
