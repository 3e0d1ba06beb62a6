"""
Upload paths for the B2 native API.

Two protocols, picked by size:
- StandardUploader: one upload URL, one request, whole-body SHA-1.
- ChunkedUploader: the large-file protocol (start, N parts, finish),
  10 MiB parts, each with its own upload URL and SHA-1.

Upload authorizations are fetched fresh for every upload and every
part; none are cached.
"""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import BinaryIO, Optional
from urllib.parse import quote

from ...core.storage import (
    PART_SIZE,
    ConfigError,
    ObjectMetadata,
    Session,
    StorageError,
    UploadAuthorization,
    UploadError,
    content_sha1,
)
from .config import B2Config
from .session import SessionManager
from .transport import B2Transport

logger = logging.getLogger(__name__)


def _now_millis() -> int:
    return int(time.time() * 1000)


def _cache_control(seconds: Optional[int]) -> Optional[str]:
    if seconds is None or seconds <= 0:
        return None
    return f"max-age={int(seconds)}"


def _parse_upload_authorization(data: dict, action: str) -> UploadAuthorization:
    upload_url = data.get("uploadUrl")
    token = data.get("authorizationToken")
    if not upload_url or not token:
        raise UploadError(f"{action} response missing required fields")
    return UploadAuthorization(upload_url=upload_url, authorization_token=token)


def _parse_object(data: dict, action: str) -> ObjectMetadata:
    try:
        return ObjectMetadata.from_response(data)
    except (KeyError, TypeError, ValueError) as e:
        raise UploadError(f"{action} response missing file record: {e}") from e


class _UploaderBase:
    def __init__(
        self,
        config: B2Config,
        sessions: SessionManager,
        transport: B2Transport,
    ) -> None:
        self._config = config
        self._sessions = sessions
        self._transport = transport

    def _session_for_bucket(self) -> Session:
        session = self._sessions.ensure_session()
        if not self._config.bucket.bucket_id:
            raise ConfigError("Bucket ID not configured")
        return session


class StandardUploader(_UploaderBase):
    """Single-request upload for objects below the large-file threshold."""

    def get_upload_url(self, session: Optional[Session] = None) -> UploadAuthorization:
        if session is None:
            session = self._session_for_bucket()
        data = self._transport.api_call(
            session,
            "b2_get_upload_url",
            {"bucketId": self._config.bucket.bucket_id},
            action="Get upload URL",
            error_cls=UploadError,
        )
        return _parse_upload_authorization(data, "Get upload URL")

    def upload(
        self,
        object_name: str,
        data: bytes,
        content_type: str,
        size: Optional[int] = None,
        cache_control_seconds: Optional[int] = None,
        last_modified_millis: Optional[int] = None,
    ) -> ObjectMetadata:
        """
        Upload `data` as `object_name` in one request.

        Raises:
            UploadError: transport failure, non-200, bad response, or
                `size` disagreeing with the bytes we were handed.
            ConfigError: no bucket id configured.
            AuthError: authorization failed.
        """
        if size is not None and size != len(data):
            raise UploadError(
                f"Declared size {size} does not match content length {len(data)}"
            )

        session = self._session_for_bucket()
        target = self.get_upload_url(session)

        headers = {
            "Authorization": target.authorization_token,
            "X-Bz-File-Name": quote(object_name, safe=""),
            "Content-Type": content_type,
            "X-Bz-Content-Sha1": content_sha1(data),
            "X-Bz-Info-src_last_modified_millis": str(
                last_modified_millis if last_modified_millis is not None else _now_millis()
            ),
        }
        cache_control = _cache_control(cache_control_seconds)
        if cache_control:
            headers["X-Bz-Info-b2-cache-control"] = cache_control

        response = self._transport.upload(
            target.upload_url,
            data,
            headers=headers,
            action="B2 Upload",
            error_cls=UploadError,
            session=session,
        )

        metadata = _parse_object(response, "B2 Upload")

        logger.info(
            "Uploaded file",
            extra={
                "object_name": object_name,
                "file_id": metadata.file_id,
                "size_bytes": len(data),
            }
        )

        return metadata


class ChunkedUploader(_UploaderBase):
    """
    Large-file upload: start, upload parts 1..N, finish.

    With `part_upload_workers` > 1, parts go out on a bounded thread pool.
    Reading stays on the calling thread, so at most that many chunks are
    held in memory at once. Whatever the transmission order, finish
    receives hashes sorted by part number.

    If anything fails after the large file was started, we ask the store
    to cancel it so no orphaned unfinished file is left behind.
    """

    def __init__(
        self,
        config: B2Config,
        sessions: SessionManager,
        transport: B2Transport,
        part_size: int = PART_SIZE,
    ) -> None:
        super().__init__(config, sessions, transport)
        if part_size < 1:
            raise ValueError("part_size must be positive")
        self._part_size = part_size

    def upload(
        self,
        object_name: str,
        source: BinaryIO,
        content_type: str,
        cache_control_seconds: Optional[int] = None,
        last_modified_millis: Optional[int] = None,
    ) -> ObjectMetadata:
        file_id = self.start_large_file(
            object_name, content_type, cache_control_seconds, last_modified_millis
        )

        try:
            part_hashes = self._upload_parts(file_id, source)
            if not part_hashes:
                raise UploadError(f"No data to upload for {object_name}")
            metadata = self.finish_large_file(file_id, part_hashes)
        except Exception:
            self.cancel_large_file(file_id)
            raise

        logger.info(
            "Uploaded large file",
            extra={
                "object_name": object_name,
                "file_id": metadata.file_id,
                "parts": len(part_hashes),
            }
        )

        return metadata

    def start_large_file(
        self,
        object_name: str,
        content_type: str,
        cache_control_seconds: Optional[int] = None,
        last_modified_millis: Optional[int] = None,
    ) -> str:
        session = self._session_for_bucket()

        file_info = {
            "src_last_modified_millis": str(
                last_modified_millis if last_modified_millis is not None else _now_millis()
            ),
        }
        cache_control = _cache_control(cache_control_seconds)
        if cache_control:
            file_info["b2-cache-control"] = cache_control

        data = self._transport.api_call(
            session,
            "b2_start_large_file",
            {
                "bucketId": self._config.bucket.bucket_id,
                "fileName": object_name,
                "contentType": content_type,
                "fileInfo": file_info,
            },
            action="Start large file upload",
            error_cls=UploadError,
        )

        file_id = data.get("fileId")
        if not file_id:
            raise UploadError("Start large file upload response missing fileId")

        logger.info(
            "Started large file",
            extra={"object_name": object_name, "file_id": file_id}
        )

        return file_id

    def get_upload_part_url(
        self, file_id: str, session: Optional[Session] = None
    ) -> UploadAuthorization:
        data = self._transport.api_call(
            session or self._sessions.ensure_session(),
            "b2_get_upload_part_url",
            {"fileId": file_id},
            action="Get upload part URL",
            error_cls=UploadError,
        )
        return _parse_upload_authorization(data, "Get upload part URL")

    def upload_part(self, file_id: str, part_number: int, chunk: bytes) -> str:
        """Upload one part and return its SHA-1."""
        session = self._sessions.ensure_session()
        target = self.get_upload_part_url(file_id, session)
        sha1 = content_sha1(chunk)

        self._transport.upload(
            target.upload_url,
            chunk,
            headers={
                "Authorization": target.authorization_token,
                "X-Bz-Part-Number": str(part_number),
                "Content-Length": str(len(chunk)),
                "X-Bz-Content-Sha1": sha1,
            },
            action=f"Upload part {part_number}",
            error_cls=UploadError,
            session=session,
        )

        logger.debug(
            "Uploaded part",
            extra={"file_id": file_id, "part_number": part_number, "size_bytes": len(chunk)}
        )

        return sha1

    def finish_large_file(self, file_id: str, part_hashes: list[str]) -> ObjectMetadata:
        data = self._transport.api_call(
            self._sessions.ensure_session(),
            "b2_finish_large_file",
            {"fileId": file_id, "partSha1Array": part_hashes},
            action="Finish large file upload",
            error_cls=UploadError,
        )
        return _parse_object(data, "Finish large file upload")

    def cancel_large_file(self, file_id: str) -> bool:
        """Best-effort cancel of an unfinished large file. Never raises."""
        try:
            self._transport.api_call(
                self._sessions.ensure_session(),
                "b2_cancel_large_file",
                {"fileId": file_id},
                action="Cancel large file upload",
                error_cls=UploadError,
            )
        except StorageError as e:
            logger.warning(
                "Failed to cancel large file",
                extra={"file_id": file_id, "error": str(e)}
            )
            return False

        logger.info("Cancelled large file", extra={"file_id": file_id})
        return True

    def _read_chunk(self, source: BinaryIO) -> bytes:
        """Read a full part, or whatever remains before end of stream."""
        chunk = bytearray()
        try:
            while len(chunk) < self._part_size:
                data = source.read(self._part_size - len(chunk))
                if not data:
                    break
                chunk += data
        except (OSError, ValueError) as e:
            raise UploadError(f"Failed to read file chunk: {e}") from e
        return bytes(chunk)

    def _upload_parts(self, file_id: str, source: BinaryIO) -> list[str]:
        hashes: dict[int, str] = {}
        workers = self._config.part_upload_workers

        if workers == 1:
            part_number = 1
            while True:
                chunk = self._read_chunk(source)
                if not chunk:
                    break
                hashes[part_number] = self.upload_part(file_id, part_number, chunk)
                part_number += 1
        else:
            self._upload_parts_parallel(file_id, source, workers, hashes)

        return [hashes[n] for n in sorted(hashes)]

    def _upload_parts_parallel(
        self,
        file_id: str,
        source: BinaryIO,
        workers: int,
        hashes: dict[int, str],
    ) -> None:
        pending: dict[Future, int] = {}

        def collect(done) -> None:
            for future in done:
                part_number = pending.pop(future)
                hashes[part_number] = future.result()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            try:
                part_number = 1
                while True:
                    chunk = self._read_chunk(source)
                    if not chunk:
                        break
                    future = pool.submit(self.upload_part, file_id, part_number, chunk)
                    pending[future] = part_number
                    part_number += 1

                    if len(pending) >= workers:
                        done, _ = wait(pending, return_when=FIRST_COMPLETED)
                        collect(done)

                while pending:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    collect(done)
            except BaseException:
                for future in pending:
                    future.cancel()
                raise
