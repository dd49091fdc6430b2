"""Domain errors shared by services and routers."""
import logging
from contextlib import contextmanager

from fastapi import status
from pymongo.errors import DuplicateKeyError, PyMongoError


logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Malformed or missing required input."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConflictError(DomainError):
    """Duplicate business key."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(DomainError):
    """Record absent, or hidden from the caller by the access policy."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(DomainError):
    """Caller lacks the role for an operation."""

    status_code = status.HTTP_403_FORBIDDEN


class StorageError(DomainError):
    """Persistence or blob store failure. Safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


@contextmanager
def storage_guard(operation: str):
    """Translate driver and filesystem failures into StorageError.

    Duplicate key errors pass through untouched so callers can map them
    to ConflictError.
    """
    try:
        yield
    except DuplicateKeyError:
        raise
    except (PyMongoError, OSError) as e:
        logger.error("Storage failure during %s: %s", operation, e)
        raise StorageError(f"Storage unavailable while trying to {operation}") from e
