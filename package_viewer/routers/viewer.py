"""
Viewer asset endpoints.

Serves files out of stored H5P and SCORM packages for in-browser preview:

* ``GET /h5p/{id}/asset`` and ``GET /scorm/{id}/asset`` return the entry point,
  or the file named by the ``asset`` query parameter
* ``GET /h5p/{id}/asset/{path}`` and ``GET /scorm/{id}/asset/{path}`` resolve
  ``path`` like a relative URL from the entry point, so packaged HTML can load
  its own scripts and styles

SCORM HTML gets the runtime API shim injected ahead of its own scripts.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from package_viewer.config import Settings
from package_viewer.errors import ApiError, ApiErrorCode
from package_viewer.models.package import PackageType, ParsedH5P
from package_viewer.services.assets import (
    PREVIEW_HEADERS,
    collapse_path,
    content_type_for,
    inject_shim,
    is_html,
    resolve_asset_path,
    strip_query,
)
from package_viewer.services.package_service import load_package, parse_package
from package_viewer.services.scorm_api_shim import build_scorm_api_script
from package_viewer.storage.base import StorageProvider
from package_viewer.storage.factory import get_settings, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Viewer"])


async def serve_asset(
    storage: StorageProvider,
    settings: Settings,
    package_type: PackageType,
    package_id: str,
    requested: Optional[str],
) -> Response:
    record = await load_package(storage, package_id, package_type)
    parsed = parse_package(record, settings.extraction_limits())

    if isinstance(parsed, ParsedH5P):
        main_file = parsed.metadata.main_file
    else:
        main_file = collapse_path(strip_query(parsed.launch_file))

    asset_path = resolve_asset_path(requested, main_file, parsed.assets)
    asset = parsed.assets.get(asset_path)
    if asset is None:
        logger.info("Asset %s not found in package %s", asset_path, package_id)
        raise ApiError(ApiErrorCode.NOT_FOUND, f'Asset "{asset_path}" not found')

    body = asset
    if package_type is PackageType.SCORM and is_html(asset_path):
        html = asset.decode("utf-8", errors="replace")
        body = inject_shim(html, build_scorm_api_script(record.id)).encode("utf-8")

    return Response(
        content=body,
        media_type=content_type_for(asset_path),
        headers=dict(PREVIEW_HEADERS),
    )


@router.get("/h5p/{package_id}/asset", summary="H5P entry point or named asset")
async def h5p_asset(
    package_id: str,
    asset: Optional[str] = Query(None),
    storage: StorageProvider = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return await serve_asset(storage, settings, PackageType.H5P, package_id, asset)


@router.get("/h5p/{package_id}/asset/{asset_path:path}", summary="H5P asset by path")
async def h5p_asset_by_path(
    package_id: str,
    asset_path: str,
    storage: StorageProvider = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return await serve_asset(storage, settings, PackageType.H5P, package_id, asset_path)


@router.get("/scorm/{package_id}/asset", summary="SCORM launch file or named asset")
async def scorm_asset(
    package_id: str,
    asset: Optional[str] = Query(None),
    storage: StorageProvider = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return await serve_asset(storage, settings, PackageType.SCORM, package_id, asset)


@router.get("/scorm/{package_id}/asset/{asset_path:path}", summary="SCORM asset by path")
async def scorm_asset_by_path(
    package_id: str,
    asset_path: str,
    storage: StorageProvider = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return await serve_asset(storage, settings, PackageType.SCORM, package_id, asset_path)
