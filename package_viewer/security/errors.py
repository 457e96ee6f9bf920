"""Domain error types for archive ingestion and package parsing.

Every error carries a machine-readable ``code`` so the HTTP layer can map it
to a status without string matching on messages.
"""

from enum import Enum


class ExtractionErrorCode(str, Enum):
    INVALID_ARCHIVE = "INVALID_ARCHIVE"
    ZIP_SLIP_DETECTED = "ZIP_SLIP_DETECTED"
    TOO_MANY_ENTRIES = "TOO_MANY_ENTRIES"
    SIZE_EXCEEDED = "SIZE_EXCEEDED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"


class ScormErrorCode(str, Enum):
    MANIFEST_MISSING = "MANIFEST_MISSING"
    INVALID_MANIFEST = "INVALID_MANIFEST"
    MANIFEST_MISSING_LAUNCH_ITEM = "MANIFEST_MISSING_LAUNCH_ITEM"
    RESOURCE_MISSING_HREF = "RESOURCE_MISSING_HREF"
    LAUNCH_FILE_MISSING = "LAUNCH_FILE_MISSING"


class FileValidationErrorCode(str, Enum):
    SIZE_EXCEEDED = "SIZE_EXCEEDED"
    INVALID_MIME = "INVALID_MIME"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    MISSING_FILE = "MISSING_FILE"


class PackageError(Exception):
    """Base class for all package ingestion failures."""

    def __init__(self, message: str, code: Enum):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}


class ZipExtractionError(PackageError):
    """Raised when an archive cannot be unpacked safely."""

    def __init__(self, message: str, code: ExtractionErrorCode):
        super().__init__(message, code)


class ScormParseError(PackageError):
    """Raised when a SCORM manifest is missing or structurally invalid."""

    def __init__(self, message: str, code: ScormErrorCode):
        super().__init__(message, code)


class FileValidationError(PackageError):
    """Raised when an upload descriptor violates the validation policy."""

    def __init__(self, message: str, code: FileValidationErrorCode):
        super().__init__(message, code)
