"""
Domain models for object storage.

These describe what we store and how we address it, independent of the
HTTP calls that move bytes around. Everything here is a value: the
session is the only thing that changes over a client's lifetime, and
it is replaced wholesale rather than mutated.
"""

import hashlib
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

MIB = 1024 * 1024

# Objects at or above this size go through the large-file protocol
LARGE_FILE_THRESHOLD = 50 * MIB
PART_SIZE = 10 * MIB

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class BucketType(Enum):
    """Bucket visibility as the store names it."""
    PUBLIC = "allPublic"
    PRIVATE = "allPrivate"


@dataclass(frozen=True)
class Credentials:
    """Application key pair used for authorization."""
    key_id: str
    application_key: str

    @property
    def is_complete(self) -> bool:
        return bool(self.key_id and self.application_key)


@dataclass(frozen=True)
class BucketIdentity:
    """
    The bucket we write into.

    Supplied by configuration; the client never creates or alters buckets.
    """
    bucket_id: str
    bucket_name: str
    bucket_type: BucketType = BucketType.PUBLIC


@dataclass(frozen=True)
class Session:
    """
    Result of a successful authorization.

    Held in memory for the lifetime of a client. There is no expiry
    tracking: a 401 from any call discards it and the next call
    authorizes again.
    """
    authorization_token: str
    api_url: str
    download_url: str
    account_id: Optional[str] = None


@dataclass(frozen=True)
class UploadAuthorization:
    """One-shot upload target returned by the store."""
    upload_url: str
    authorization_token: str


@dataclass(frozen=True)
class ObjectMetadata:
    """
    The store's canonical record of an uploaded file.

    `raw` keeps the full response so callers can reach fields we
    don't model.
    """
    file_id: str
    file_name: str
    content_length: Optional[int] = None
    content_type: Optional[str] = None
    content_sha1: Optional[str] = None
    action: Optional[str] = None
    upload_timestamp: Optional[int] = None
    file_info: dict[str, str] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "ObjectMetadata":
        """Build from a file record (upload or finish_large_file response)."""
        length = data.get("contentLength")
        return cls(
            file_id=str(data["fileId"]),
            file_name=str(data["fileName"]),
            content_length=int(length) if length is not None else None,
            content_type=data.get("contentType"),
            content_sha1=data.get("contentSha1"),
            action=data.get("action"),
            upload_timestamp=data.get("uploadTimestamp"),
            file_info=dict(data.get("fileInfo") or {}),
            raw=dict(data),
        )


def build_object_name(owner_id: Any, filename: str) -> str:
    """
    Build the remote name for a file: <owner_id>/<filename>.

    This is the only addressing key. The same owner and filename always
    map to the same object, so a second upload replaces the first.
    """
    owner = str(owner_id).strip() if owner_id is not None else ""
    base = (filename or "").strip()
    if not owner:
        raise ValueError("owner_id cannot be empty")
    if not base:
        raise ValueError("filename cannot be empty")
    return f"{owner}/{base}"


def content_sha1(data: bytes) -> str:
    """Hex SHA-1 of the exact bytes sent, as the store verifies it."""
    return hashlib.sha1(data).hexdigest()


def guess_content_type(filename: str) -> str:
    """Best-effort MIME type from the filename."""
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE
