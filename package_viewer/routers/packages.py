"""Packages router: list, inspect and delete stored packages."""

import logging

from fastapi import APIRouter, Depends, Response, status

from package_viewer.config import Settings
from package_viewer.errors import ApiError
from package_viewer.models.package import PackageDetail, PackageListResponse
from package_viewer.services.package_service import describe, load_package, summarize
from package_viewer.storage.base import StorageProvider
from package_viewer.storage.factory import get_settings, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/packages", tags=["Packages"])


@router.get("", response_model=PackageListResponse, summary="List packages")
async def list_packages(storage: StorageProvider = Depends(get_storage)):
    records = await storage.list()
    packages = [summarize(record) for record in records]
    return PackageListResponse(packages=packages, total=len(packages))


@router.get(
    "/{package_id}",
    response_model=PackageDetail,
    summary="Get package metadata",
)
async def get_package(
    package_id: str,
    storage: StorageProvider = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Return the stored package summary plus metadata read from the archive.

    A stored package that no longer parses is reported as 422 PARSE_ERROR.
    """
    record = await load_package(storage, package_id)
    return describe(record, settings.extraction_limits())


@router.delete(
    "/{package_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a package",
)
async def delete_package(
    package_id: str, storage: StorageProvider = Depends(get_storage)
):
    if not await storage.delete(package_id):
        raise ApiError.not_found("Package")
    logger.info("Deleted package %s", package_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
