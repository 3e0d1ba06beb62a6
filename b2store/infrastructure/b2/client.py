"""
Object storage client for Backblaze B2.

This is the one entry point the host talks to. It owns an HTTP client
and a session, and hands both to the components that speak the
protocol:
- SessionManager: authorization and its cached token
- StandardUploader / ChunkedUploader: the two upload protocols
- Deleter: lookup by name, then delete by id
- UrlResolver: public URL derivation

Local storage mode swaps in a passthrough client that never talks to
the store, so the host code doesn't need its own branch for it.
"""

import io
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union

import httpx

from ...core.storage import (
    LARGE_FILE_THRESHOLD,
    PART_SIZE,
    ObjectMetadata,
    UploadError,
    build_object_name,
    guess_content_type,
)
from .config import B2Config
from .deleter import Deleter
from .session import SessionManager
from .transport import B2Transport
from .uploader import ChunkedUploader, StandardUploader
from .urls import UrlResolver

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, BinaryIO]


class StorageClient(Protocol):
    """
    Protocol for the storage operations the host uses.

    Using a protocol means tests can provide fakes and local storage
    mode can stand in for the real client.
    """

    def upload(
        self,
        owner_id,
        filename: str,
        source: Source,
        size: Optional[int] = None,
        content_type: Optional[str] = None,
        cache_control_seconds: Optional[int] = None,
        last_modified_millis: Optional[int] = None,
    ) -> Optional[ObjectMetadata]:
        """Upload an object and return the store's record of it."""
        ...

    def upload_file(
        self,
        owner_id,
        path: Union[str, Path],
        content_type: Optional[str] = None,
        cache_control_seconds: Optional[int] = None,
    ) -> Optional[ObjectMetadata]:
        """Upload a local file under its own basename."""
        ...

    def delete(self, owner_id, filename: str) -> bool:
        """Delete an object. Returns False if there was nothing to delete."""
        ...

    def resolve_url(self, owner_id, filename: str, fallback_url: str = "") -> str:
        """Public URL for an object."""
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "StorageClient":
        ...

    def __exit__(self, *exc_info) -> None:
        ...


def _measure(source: Source) -> int:
    if isinstance(source, memoryview):
        return source.nbytes
    if isinstance(source, (bytes, bytearray)):
        return len(source)
    try:
        position = source.tell()
        end = source.seek(0, io.SEEK_END)
        source.seek(position)
    except (AttributeError, OSError, ValueError) as e:
        raise UploadError(
            "Cannot determine size of a non-seekable source; pass size explicitly"
        ) from e
    return end - position


class B2StorageClient:
    """
    Backblaze B2 client built on httpx.

    All calls are blocking and issued one at a time, except large-file
    parts when `part_upload_workers` > 1.
    """

    def __init__(
        self,
        config: B2Config,
        http: Optional[httpx.Client] = None,
        part_size: int = PART_SIZE,
    ) -> None:
        self._config = config
        self._transport = B2Transport(
            http or httpx.Client(),
            metadata_timeout=config.metadata_timeout,
            data_timeout=config.data_timeout,
        )
        self._sessions = SessionManager(
            config.credentials, self._transport, config.auth_url
        )
        self._standard = StandardUploader(config, self._sessions, self._transport)
        self._chunked = ChunkedUploader(
            config, self._sessions, self._transport, part_size=part_size
        )
        self._deleter = Deleter(config, self._sessions, self._transport)
        self._urls = UrlResolver(config, self._sessions)

        logger.info(
            "Initialized B2 storage client",
            extra={
                "bucket": config.bucket.bucket_name,
                "url_mode": config.url_mode.value,
            }
        )

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def upload(
        self,
        owner_id,
        filename: str,
        source: Source,
        size: Optional[int] = None,
        content_type: Optional[str] = None,
        cache_control_seconds: Optional[int] = None,
        last_modified_millis: Optional[int] = None,
    ) -> ObjectMetadata:
        """
        Upload `source` as <owner_id>/<filename>.

        Objects under 50 MiB go up in one request; anything at or above
        uses the large-file protocol. The uploader's result is returned
        unchanged.
        """
        object_name = build_object_name(owner_id, filename)
        if size is None:
            size = _measure(source)
        if content_type is None:
            content_type = guess_content_type(filename)
        if cache_control_seconds is None:
            cache_control_seconds = self._config.cache_control_seconds

        size_mb = round(size / 1024 / 1024, 2)

        if size >= LARGE_FILE_THRESHOLD:
            logger.info(
                "Starting chunked upload",
                extra={"object_name": object_name, "size_mb": size_mb}
            )
            stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray, memoryview)) else source
            return self._chunked.upload(
                object_name,
                stream,
                content_type,
                cache_control_seconds=cache_control_seconds,
                last_modified_millis=last_modified_millis,
            )

        logger.info(
            "Starting standard upload",
            extra={"object_name": object_name, "size_mb": size_mb}
        )
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
        else:
            try:
                data = source.read()
            except (OSError, ValueError) as e:
                raise UploadError(f"Failed to read file: {e}") from e

        return self._standard.upload(
            object_name,
            data,
            content_type,
            size=size,
            cache_control_seconds=cache_control_seconds,
            last_modified_millis=last_modified_millis,
        )

    def upload_file(
        self,
        owner_id,
        path: Union[str, Path],
        content_type: Optional[str] = None,
        cache_control_seconds: Optional[int] = None,
    ) -> ObjectMetadata:
        """Upload a local file; size and mtime come from the filesystem."""
        path = Path(path)
        try:
            stat = path.stat()
            handle = path.open("rb")
        except OSError as e:
            raise UploadError(f"Failed to read file: {path}") from e

        with handle:
            return self.upload(
                owner_id,
                path.name,
                handle,
                size=stat.st_size,
                content_type=content_type,
                cache_control_seconds=cache_control_seconds,
                last_modified_millis=int(stat.st_mtime * 1000),
            )

    def delete(self, owner_id, filename: str) -> bool:
        return self._deleter.delete(owner_id, filename)

    def resolve_url(self, owner_id, filename: str, fallback_url: str = "") -> str:
        return self._urls.resolve(owner_id, filename, fallback_url)

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "B2StorageClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Local Storage Passthrough
# ---------------------------------------------------------------------------

class LocalStorageClient:
    """
    Client for hosts configured to keep files locally.

    Nothing is sent to the store: uploads and deletes are no-ops and
    URLs are whatever the host already serves the file from.
    """

    def __init__(self) -> None:
        logger.info("Initialized local storage client (no remote calls)")

    def upload(
        self,
        owner_id,
        filename: str,
        source: Source,
        size: Optional[int] = None,
        content_type: Optional[str] = None,
        cache_control_seconds: Optional[int] = None,
        last_modified_millis: Optional[int] = None,
    ) -> None:
        logger.debug(
            "Local storage, skipping upload",
            extra={"object_name": build_object_name(owner_id, filename)}
        )
        return None

    def upload_file(
        self,
        owner_id,
        path: Union[str, Path],
        content_type: Optional[str] = None,
        cache_control_seconds: Optional[int] = None,
    ) -> None:
        return self.upload(owner_id, Path(path).name, b"")

    def delete(self, owner_id, filename: str) -> bool:
        return False

    def resolve_url(self, owner_id, filename: str, fallback_url: str = "") -> str:
        return fallback_url

    def close(self) -> None:
        pass

    def __enter__(self) -> "LocalStorageClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[B2Config] = None,
    local_storage: bool = False,
    http: Optional[httpx.Client] = None,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: B2 configuration (required unless local storage)
        local_storage: If True, return the passthrough client
        http: Optional pre-built httpx client (tests inject a mock transport)

    Returns:
        StorageClient implementation (B2 or local passthrough)
    """
    if local_storage or (config is not None and config.local_storage):
        return LocalStorageClient()

    if config is None:
        raise ValueError("config is required when not using local storage")

    return B2StorageClient(config, http=http)
