"""
Application error hierarchy.

Services raise these; the exception handlers registered in ``main`` turn them
into the ``{success: false, error, message}`` response envelope.
"""

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base class for all errors that map to an HTTP status code."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    """Requested resource does not exist (or is not visible to the caller)."""
    status_code = 404


class ConflictError(AppError):
    """Resource collides with an existing one, e.g. a duplicate active record."""
    status_code = 409


class ValidationError(AppError):
    """Malformed or disallowed input."""
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class UnauthorizedError(AppError):
    """Missing, invalid or expired credential."""
    status_code = 401


class DocumentProcessingError(AppError):
    """Identity document could not be read; no account action is possible."""
    status_code = 422


class AIProcessingError(AppError):
    """The AI service was asked to do something it cannot do."""
    status_code = 400


class NonHealthcareDocumentError(AppError):
    """Uploaded document is not a medical document."""
    status_code = 422


class StorageError(AppError):
    """Object storage operation failed."""
    status_code = 502
