"""
Health Check Router

Provides health check endpoints for monitoring application status.
"""

from fastapi import APIRouter, Depends, HTTPException
from package_viewer.config import Settings
from package_viewer.models.package import HealthCheckResponse
from package_viewer.storage.base import StorageProvider
from package_viewer.storage.factory import get_settings, get_storage
import time
import os
from datetime import datetime

# Initialize router
router = APIRouter()

# Application start time for uptime calculation
_start_time = time.time()


@router.get("/health", response_model=HealthCheckResponse, summary="Basic Health Check")
async def health_check(settings: Settings = Depends(get_settings)):
    """
    Basic health check endpoint

    Returns application status, version, and environment information.
    This endpoint is used by load balancers and monitoring systems.
    """
    uptime = time.time() - _start_time

    return HealthCheckResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment.value,
        timestamp=datetime.utcnow(),
        uptime=uptime,
        storage=settings.storage_backend.value,
    )


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check(storage: StorageProvider = Depends(get_storage)):
    """
    Kubernetes-style readiness probe

    Returns 200 once the storage backend answers, 503 otherwise.
    """
    if not await storage.ping():
        raise HTTPException(
            status_code=503,
            detail="Application not ready: storage backend unavailable",
        )
    return {"status": "ready", "timestamp": datetime.utcnow().isoformat()}


@router.get("/health/live", summary="Liveness Check")
async def liveness_check():
    """
    Kubernetes-style liveness probe

    Returns 200 if the application is alive and responding.
    """
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "pid": os.getpid()
    }
