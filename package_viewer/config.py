"""
Application Settings

Environment-based configuration for the package viewer backend. All values are
read once through ``Settings.from_env()``; nothing else in the application
touches ``os.environ`` directly except the upload size default, which follows
the same ``MAX_FILE_SIZE_MB`` variable.
"""

import os
import pathlib
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from package_viewer.security.zip_extractor import ExtractionLimits

backend_dir = pathlib.Path(__file__).parent.parent
DEFAULT_SQLITE_URL = f"sqlite+aiosqlite:///{backend_dir / 'packages.db'}"
DEFAULT_STORAGE_DIR = str(backend_dir / "package_store")


class Environment(Enum):
    DEVELOPMENT = "development"
    TEST = "test"
    STAGING = "staging"
    PRODUCTION = "production"


class StorageBackend(Enum):
    MEMORY = "memory"
    FILESYSTEM = "filesystem"
    DATABASE = "database"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def _bool_env(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    environment: Environment = Environment.DEVELOPMENT
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"]
    )
    max_file_size_mb: int = 100
    zip_max_entries: int = 10_000
    zip_max_total_mb: int = 500
    storage_backend: StorageBackend = StorageBackend.MEMORY
    storage_dir: str = DEFAULT_STORAGE_DIR
    database_url: str = DEFAULT_SQLITE_URL
    sql_echo: bool = False
    package_ttl_seconds: Optional[int] = None
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        env_name = os.getenv("ENVIRONMENT", "development").lower()
        try:
            environment = Environment(env_name)
        except ValueError:
            environment = Environment.DEVELOPMENT

        backend_name = os.getenv("STORAGE_BACKEND", "memory").lower()
        try:
            storage_backend = StorageBackend(backend_name)
        except ValueError:
            raise ValueError(
                f"Unknown STORAGE_BACKEND {backend_name!r}; expected one of "
                f"{', '.join(b.value for b in StorageBackend)}"
            )

        ttl = _int_env("PACKAGE_TTL_SECONDS", 0)

        return cls(
            environment=environment,
            app_version=os.getenv("APP_VERSION", "1.0.0"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[
                origin.strip()
                for origin in os.getenv(
                    "CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"
                ).split(",")
                if origin.strip()
            ],
            max_file_size_mb=_int_env("MAX_FILE_SIZE_MB", 100),
            zip_max_entries=_int_env("ZIP_MAX_ENTRIES", 10_000),
            zip_max_total_mb=_int_env("ZIP_MAX_TOTAL_MB", 500),
            storage_backend=storage_backend,
            storage_dir=os.getenv("STORAGE_DIR", DEFAULT_STORAGE_DIR),
            database_url=os.getenv("DATABASE_URL", DEFAULT_SQLITE_URL),
            sql_echo=_bool_env("SQL_ECHO"),
            package_ttl_seconds=ttl if ttl > 0 else None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=_int_env("PORT", 8000),
        )

    def extraction_limits(self) -> ExtractionLimits:
        return ExtractionLimits(
            max_entries=self.zip_max_entries,
            max_total_bytes=self.zip_max_total_mb * 1024 * 1024,
        )
