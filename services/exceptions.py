"""Shared exception types."""


class AppError(Exception):
    """Base exception for application-level errors."""


class NotFoundError(AppError):
    """Raised when a requested resource cannot be located."""


class StorageError(AppError):
    """Raised by a durable storage area when a read or write cannot be served."""


class StorageQuotaExceededError(StorageError):
    """Raised when a write would push a storage area past its quota."""
