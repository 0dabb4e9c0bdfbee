"""Domain errors raised by the entitlement and storage core.

Each error carries the HTTP status the API layer answers with. Everything
here is per-request; nothing is fatal to the process.
"""
from fastapi import status


class SushflixError(Exception):
    """Base class for all domain errors."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "An unexpected error occurred"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(SushflixError):
    """Bad input shape, type or size. Recoverable client-side, never retried."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class AuthorizationError(SushflixError):
    """Caller lacks ownership or a sufficient tier.

    The detail is fixed so responses never reveal which check failed.
    """
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient access"

    def __init__(self, detail: str | None = None):
        super().__init__(self.default_detail)
        # kept for logs only
        self.reason = detail


class NotFoundError(SushflixError):
    """Referenced content, subscription, user or object key is absent."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(SushflixError):
    """Duplicate active subscription or duplicate storage key."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class StorageError(SushflixError):
    """Failure writing to or deleting from the backing object store."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to store file in storage"
