"""
Pydantic Models for Package Data

Domain results produced by the package resolvers plus the request/response
shapes used by the HTTP layer. Field aliases keep the wire format camelCase
while Python code stays snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PackageType(str, Enum):
    H5P = "h5p"
    SCORM = "scorm"


ScormVersion = Literal["1.2", "2004", "unknown"]

# Ordered mapping of normalized archive path -> file bytes
AssetMap = Dict[str, bytes]


class H5PMetadata(BaseModel):
    """Descriptive metadata resolved from an H5P package"""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    main_library: Optional[str] = Field(None, alias="mainLibrary")
    language: Optional[str] = None
    main_file: str = Field(..., alias="mainFile")


class ParsedH5P(BaseModel):
    metadata: H5PMetadata
    assets: AssetMap


class ParsedSCORM(BaseModel):
    """Launch information resolved from a SCORM package"""

    title: str
    version: ScormVersion
    launch_file: str
    organization: Optional[str] = None
    base_path: str = ""
    manifest_path: str
    resource_type: Optional[str] = None
    assets: AssetMap


class PackageValidationResult(BaseModel):
    valid: bool
    package_type: Optional[PackageType] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, package_type: PackageType) -> "PackageValidationResult":
        return cls(valid=True, package_type=package_type)

    @classmethod
    def fail(cls, error: str) -> "PackageValidationResult":
        return cls(valid=False, error=error)


# API response models ---------------------------------------------------------


class ValidateResponse(BaseModel):
    valid: bool
    packageType: PackageType


class UploadResponse(BaseModel):
    success: bool = True
    packageId: str
    packageType: PackageType
    viewerUrl: str


class PackageSummary(BaseModel):
    id: str
    type: PackageType
    filename: str
    size: int
    uploadedAt: datetime
    expiresAt: Optional[datetime] = None
    viewerUrl: str


class H5PPackageDetail(PackageSummary):
    metadata: H5PMetadata


class ScormPackageMetadata(BaseModel):
    title: str
    version: ScormVersion
    organization: Optional[str] = None
    launchFile: str
    resourceType: Optional[str] = None


class ScormPackageDetail(PackageSummary):
    metadata: ScormPackageMetadata


PackageDetail = Union[H5PPackageDetail, ScormPackageDetail]


class PackageListResponse(BaseModel):
    packages: List[PackageSummary]
    total: int


class HealthCheckResponse(BaseModel):
    """Health Check Response Model"""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Service health status")
    version: str = Field(..., description="API version")
    environment: str = Field(..., description="Environment name")
    timestamp: datetime = Field(..., description="Check timestamp")
    uptime: float = Field(..., ge=0, description="Service uptime in seconds")
    storage: str = Field(..., description="Active storage backend")
