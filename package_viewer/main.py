"""Main FastAPI application entry point.

Provides CORS, error envelopes, package upload, inspection and asset
delivery for H5P and SCORM previews.
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from datetime import datetime

from package_viewer.config import Settings
from package_viewer.errors import ApiError
# Import routers
from package_viewer.routers import health, packages, upload, viewer
from package_viewer.storage.factory import create_storage

settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Application metadata
APP_NAME = "H5P & SCORM Package Viewer API"
VERSION = settings.app_version
DESCRIPTION = """
Package Viewer Backend API

## Features

* **Upload**: Validate and store H5P (.h5p) and SCORM (.zip) packages
* **Inspection**: Resolve titles, entry points and SCORM versions
* **Preview**: Serve package assets with a SCORM runtime API shim
* **Health Check**: Monitor application status
"""

# Initialize FastAPI app
app = FastAPI(
    title=APP_NAME,
    description=DESCRIPTION,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)
app.state.settings = settings

# CORS middleware configuration
cors_origins = settings.cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Global exception handlers


@app.exception_handler(ApiError)
async def api_error_handler(request, exc: ApiError):
    """Render domain/API errors as {code, message[, details]}"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code.value}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.to_dict(),
            "timestamp": datetime.utcnow().isoformat(),
            "path": str(request.url)
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions with consistent error format"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "timestamp": datetime.utcnow().isoformat(),
            "path": str(request.url)
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
            },
            "timestamp": datetime.utcnow().isoformat(),
            "path": str(request.url)
        }
    )

# Include routers
app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(upload.router, prefix="/api/v1")
app.include_router(packages.router, prefix="/api/v1")
app.include_router(viewer.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "name": APP_NAME,
        "version": VERSION,
        "status": "running",
        "environment": settings.environment.value,
        "timestamp": datetime.utcnow().isoformat(),
        "docs": "/docs",
        "health": "/api/v1/health"
    }


@app.on_event("startup")
async def startup_event():
    """Application startup tasks"""
    logger.info(f"Starting {APP_NAME} v{VERSION}")
    logger.info(f"Environment: {settings.environment.value}")
    logger.info(f"CORS Origins: {cors_origins}")
    storage = create_storage(settings)
    await storage.init()
    app.state.storage = storage


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown tasks"""
    storage = getattr(app.state, "storage", None)
    if storage is not None:
        await storage.close()
    logger.info(f"Shutting down {APP_NAME}")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "package_viewer.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment.value == "development",
        log_level=settings.log_level.lower()
    )
