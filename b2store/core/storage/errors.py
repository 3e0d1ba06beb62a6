"""
Error taxonomy for storage operations.

Every remote failure is raised to the direct caller as one of these.
The host layer decides how to present them; we only make sure the
message carries the HTTP status and whatever the store told us.
"""

from typing import Optional


class StorageError(Exception):
    """Raised when storage operations fail."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthError(StorageError):
    """Missing credentials or a failed authorization exchange."""
    pass


class UploadError(StorageError):
    """Standard or chunked upload failed."""
    pass


class DeleteError(StorageError):
    """Listing or deleting a file version failed."""
    pass


class ConfigError(StorageError):
    """Required configuration (e.g. bucket id) is absent."""
    pass
