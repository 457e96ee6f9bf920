"""HTTP-facing error type.

Routes raise ``ApiError``; the handler registered in ``main.py`` renders it in
the standard response envelope.
"""

from enum import Enum
from typing import Any, Optional


class ApiErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


STATUS_CODES = {
    ApiErrorCode.VALIDATION_ERROR: 400,
    ApiErrorCode.NOT_FOUND: 404,
    ApiErrorCode.UPLOAD_FAILED: 500,
    ApiErrorCode.STORAGE_ERROR: 500,
    ApiErrorCode.PARSE_ERROR: 422,
    ApiErrorCode.INTERNAL_ERROR: 500,
}


class ApiError(Exception):
    def __init__(
        self,
        code: ApiErrorCode,
        message: str,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.code]

    def to_dict(self) -> dict:
        error = {"code": self.code.value, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return error

    @classmethod
    def validation(cls, message: str, details: Optional[Any] = None) -> "ApiError":
        return cls(ApiErrorCode.VALIDATION_ERROR, message, details)

    @classmethod
    def not_found(cls, resource: str) -> "ApiError":
        return cls(ApiErrorCode.NOT_FOUND, f"{resource} not found")

    @classmethod
    def parse(cls, message: str, details: Optional[Any] = None) -> "ApiError":
        return cls(ApiErrorCode.PARSE_ERROR, message, details)

    @classmethod
    def storage(cls, message: str) -> "ApiError":
        return cls(ApiErrorCode.STORAGE_ERROR, message)
