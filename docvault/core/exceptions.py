"""
Custom Exceptions
Application-specific exception classes
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base application exception"""

    def __init__(
        self,
        message: str,
        code: str = "app_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)


class ValidationException(AppException):
    """Validation error exception"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="validation_error",
            status_code=400,
            details=details,
        )


class AuthenticationException(AppException):
    """Authentication error exception"""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="authentication_error",
            status_code=401,
            details=details,
        )


class ForbiddenException(AppException):
    """Capability check failed for the requested operation"""

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="forbidden",
            status_code=403,
            details=details,
        )


class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource: str = "Resource",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=f"{resource} not found",
            code="not_found",
            status_code=404,
            details=details,
        )


class ConflictException(AppException):
    """Resource conflict exception"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="conflict",
            status_code=409,
            details=details,
        )


class BlobNotFoundException(AppException):
    """
    Storage key is absent from the blob store

    The key and backend stay on the exception for logging and never reach
    the client-facing details.
    """

    def __init__(
        self,
        storage_key: str,
        backend: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.storage_key = storage_key
        self.backend = backend
        super().__init__(
            message="Stored file not found",
            code="blob_not_found",
            status_code=404,
            details=details,
        )


class BlobUnavailableException(AppException):
    """Blob storage backend I/O failure"""

    def __init__(
        self,
        message: str = "File storage is unavailable",
        backend: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.backend = backend
        super().__init__(
            message=message,
            code="blob_unavailable",
            status_code=503,
            details=details,
        )
