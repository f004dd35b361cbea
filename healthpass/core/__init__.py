"""Core module - error hierarchy and logging configuration."""

from .errors import (
    AppError,
    NotFoundError,
    ConflictError,
    ValidationError,
    UnauthorizedError,
    DocumentProcessingError,
    AIProcessingError,
    NonHealthcareDocumentError,
    StorageError,
)
from .logging_config import setup_logging

__all__ = [
    'AppError', 'NotFoundError', 'ConflictError', 'ValidationError', 'UnauthorizedError',
    'DocumentProcessingError', 'AIProcessingError', 'NonHealthcareDocumentError', 'StorageError',
    'setup_logging'
]
