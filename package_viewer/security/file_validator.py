"""
Upload File Validator

Checks an upload descriptor (size, filename, declared MIME type) against a
validation policy before any archive bytes are inspected.
"""

import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field

from package_viewer.models.package import PackageType
from .errors import FileValidationError, FileValidationErrorCode

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_MB = 100
BYTES_PER_MB = 1024 * 1024

ALLOWED_MIME_TYPES = [
    "application/zip",
    "application/x-zip-compressed",
    "application/octet-stream",
]


class ValidationConfig(BaseModel):
    max_size_bytes: int = Field(..., gt=0)
    allowed_mime_types: List[str] = Field(..., min_length=1)
    allowed_extensions: List[str] = Field(..., min_length=1)


class FileDescriptor(BaseModel):
    size: Optional[int] = Field(None, ge=0)
    filename: str
    declared_mime_type: Optional[str] = None


def get_max_size_bytes() -> int:
    """Max upload size from ``MAX_FILE_SIZE_MB``, falling back to 100MB."""
    raw = os.getenv("MAX_FILE_SIZE_MB")
    try:
        size_mb = int(raw) if raw else DEFAULT_MAX_SIZE_MB
    except ValueError:
        logger.warning("Ignoring invalid MAX_FILE_SIZE_MB=%r", raw)
        size_mb = DEFAULT_MAX_SIZE_MB
    if size_mb <= 0:
        size_mb = DEFAULT_MAX_SIZE_MB
    return size_mb * BYTES_PER_MB


def get_default_validation_config() -> ValidationConfig:
    return ValidationConfig(
        max_size_bytes=get_max_size_bytes(),
        allowed_mime_types=list(ALLOWED_MIME_TYPES),
        allowed_extensions=[".h5p", ".zip"],
    )


def get_h5p_validation_config() -> ValidationConfig:
    return ValidationConfig(
        max_size_bytes=get_max_size_bytes(),
        allowed_mime_types=list(ALLOWED_MIME_TYPES),
        allowed_extensions=[".h5p"],
    )


def get_scorm_validation_config() -> ValidationConfig:
    return ValidationConfig(
        max_size_bytes=get_max_size_bytes(),
        allowed_mime_types=list(ALLOWED_MIME_TYPES),
        allowed_extensions=[".zip"],
    )


def config_for(package_type: Optional[PackageType]) -> ValidationConfig:
    if package_type is PackageType.H5P:
        return get_h5p_validation_config()
    if package_type is PackageType.SCORM:
        return get_scorm_validation_config()
    return get_default_validation_config()


def get_file_extension(filename: str) -> str:
    """Lowercased extension including the dot, or "" when there is none."""
    last_dot = filename.rfind(".")
    return filename[last_dot:].lower() if last_dot >= 0 else ""


def _validate_size(size: int, max_size_bytes: int) -> None:
    if size > max_size_bytes:
        size_mb = size / BYTES_PER_MB
        max_mb = max_size_bytes / BYTES_PER_MB
        raise FileValidationError(
            f"File size ({size_mb:.2f}MB) exceeds maximum allowed size ({max_mb:.0f}MB)",
            FileValidationErrorCode.SIZE_EXCEEDED,
        )


def _validate_extension(filename: str, allowed_extensions: List[str]) -> None:
    ext = get_file_extension(filename)
    if ext not in allowed_extensions:
        raise FileValidationError(
            f'File extension "{ext}" is not allowed. '
            f"Allowed extensions: {', '.join(allowed_extensions)}",
            FileValidationErrorCode.INVALID_EXTENSION,
        )


def _validate_mime_type(
    mime_type: Optional[str], allowed_mime_types: List[str]
) -> None:
    # Browsers sometimes omit the MIME type entirely
    if not mime_type:
        return
    if mime_type not in allowed_mime_types:
        raise FileValidationError(
            f'MIME type "{mime_type}" is not allowed. '
            f"Allowed types: {', '.join(allowed_mime_types)}",
            FileValidationErrorCode.INVALID_MIME,
        )


def validate_file(
    descriptor: Optional[FileDescriptor],
    config: Optional[ValidationConfig] = None,
    **overrides,
) -> None:
    """
    Validate an upload descriptor against a policy.

    Args:
        descriptor: Upload size, filename and declared MIME type
        config: Base policy (defaults to the combined H5P/SCORM policy)
        **overrides: Individual ``ValidationConfig`` fields to replace

    Raises:
        FileValidationError: On the first violated constraint, checked in the
            order missing file, size, extension, MIME type.
        pydantic.ValidationError: If the merged policy itself is invalid.
    """
    base = config or get_default_validation_config()
    policy = ValidationConfig(**{**base.model_dump(), **overrides})

    if descriptor is None or descriptor.size is None or descriptor.size == 0:
        raise FileValidationError(
            "File is missing or invalid", FileValidationErrorCode.MISSING_FILE
        )

    _validate_size(descriptor.size, policy.max_size_bytes)
    _validate_extension(descriptor.filename, policy.allowed_extensions)
    _validate_mime_type(descriptor.declared_mime_type, policy.allowed_mime_types)
