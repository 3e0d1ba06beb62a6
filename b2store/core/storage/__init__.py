"""
Storage domain: object addressing, session values and error types.
"""

from .errors import AuthError, ConfigError, DeleteError, StorageError, UploadError
from .models import (
    DEFAULT_CONTENT_TYPE,
    LARGE_FILE_THRESHOLD,
    PART_SIZE,
    BucketIdentity,
    BucketType,
    Credentials,
    ObjectMetadata,
    Session,
    UploadAuthorization,
    build_object_name,
    content_sha1,
    guess_content_type,
)

__all__ = [
    "AuthError",
    "BucketIdentity",
    "BucketType",
    "ConfigError",
    "Credentials",
    "DEFAULT_CONTENT_TYPE",
    "DeleteError",
    "LARGE_FILE_THRESHOLD",
    "ObjectMetadata",
    "PART_SIZE",
    "Session",
    "StorageError",
    "UploadAuthorization",
    "UploadError",
    "build_object_name",
    "content_sha1",
    "guess_content_type",
]
