"""
Package upload endpoints.

Both endpoints run the same checks in the same order:
1. Package type from the explicit ``packageType`` field or the file extension
2. Upload descriptor validation (size, extension, MIME type)
3. Archive content check against the type from step 1

``/upload/validate`` stops there; ``/upload`` then stores the package.
"""

import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from package_viewer.errors import ApiError
from package_viewer.models.package import PackageType, UploadResponse, ValidateResponse
from package_viewer.security.errors import FileValidationError
from package_viewer.security.file_validator import (
    FileDescriptor,
    config_for,
    validate_file,
)
from package_viewer.services.package_type import (
    classify_by_contents,
    classify_by_extension,
    get_viewer_route,
)
from package_viewer.storage.base import (
    PackageInput,
    StorageError,
    StorageProvider,
    StoredFile,
    generate_package_id,
)
from package_viewer.storage.factory import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])

DEFAULT_MIME_TYPE = "application/octet-stream"


async def check_upload(
    upload: Optional[UploadFile], package_type_field: Optional[str]
) -> Tuple[bytes, PackageType]:
    """Run every pre-storage check; return the bytes and the resolved type."""
    if upload is None or not upload.filename:
        raise ApiError.validation("No file provided")

    package_type = classify_by_extension(upload.filename, package_type_field)
    if package_type is None:
        raise ApiError.validation(
            "Unsupported file extension. Upload .h5p or .zip archives."
        )

    data = await upload.read()
    descriptor = FileDescriptor(
        size=len(data),
        filename=upload.filename,
        declared_mime_type=upload.content_type,
    )
    try:
        validate_file(descriptor, config_for(package_type))
    except FileValidationError as e:
        logger.info("Rejected upload %r: %s", upload.filename, e.message)
        raise ApiError.validation(e.message, details={"code": e.code.value})

    result = classify_by_contents(data, package_type)
    if not result.valid:
        logger.info("Rejected upload %r: %s", upload.filename, result.error)
        raise ApiError.validation(result.error or "Invalid package contents")

    return data, result.package_type


@router.post("/validate", response_model=ValidateResponse, summary="Validate a package")
async def validate_upload(
    file: Optional[UploadFile] = File(None),
    packageType: str = Form("auto"),
):
    """Check an archive without storing it."""
    _, package_type = await check_upload(file, packageType)
    return ValidateResponse(valid=True, packageType=package_type)


@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a package",
)
async def upload_package(
    package: Optional[UploadFile] = File(None),
    packageType: str = Form("auto"),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Validate and store an H5P or SCORM archive.

    Returns the new package id and the viewer route for it.
    """
    data, package_type = await check_upload(package, packageType)

    package_id = generate_package_id()
    stored_file = StoredFile.from_bytes(
        filename=package.filename,
        mime_type=package.content_type or DEFAULT_MIME_TYPE,
        data=data,
    )
    try:
        await storage.store(
            PackageInput(id=package_id, type=package_type, file=stored_file)
        )
    except StorageError as e:
        logger.error(f"Storing package {package_id} failed: {e}")
        raise ApiError.storage("Failed to store package")

    logger.info(
        "Stored %s package %s (%s, %d bytes)",
        package_type.value,
        package_id,
        stored_file.filename,
        stored_file.size,
    )
    return UploadResponse(
        packageId=package_id,
        packageType=package_type,
        viewerUrl=get_viewer_route(package_type, package_id),
    )
