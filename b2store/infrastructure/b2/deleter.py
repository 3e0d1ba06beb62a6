"""
Deletion by object name.

The store deletes file versions by id, so we look the name up first.
A name that isn't there is not an error: deleting is idempotent.
"""

import logging

from ...core.storage import ConfigError, DeleteError, build_object_name
from .config import B2Config
from .session import SessionManager
from .transport import B2Transport

logger = logging.getLogger(__name__)


class Deleter:
    def __init__(
        self,
        config: B2Config,
        sessions: SessionManager,
        transport: B2Transport,
    ) -> None:
        self._config = config
        self._sessions = sessions
        self._transport = transport

    def delete(self, owner_id, filename: str) -> bool:
        """
        Delete the current version of <owner_id>/<filename>.

        Returns True if a version was deleted, False if nothing by that
        exact name exists (only the list call is issued in that case).

        Raises:
            DeleteError: the list or delete call failed.
            ConfigError: no bucket id configured.
        """
        object_name = build_object_name(owner_id, filename)
        session = self._sessions.ensure_session()

        if not self._config.bucket.bucket_id:
            raise ConfigError("Bucket ID not configured")

        listing = self._transport.api_call(
            session,
            "b2_list_file_names",
            {
                "bucketId": self._config.bucket.bucket_id,
                "startFileName": object_name,
                "maxFileCount": 1,
                "prefix": object_name,
            },
            action="List file for deletion",
            error_cls=DeleteError,
        )

        files = listing.get("files") or []
        found = files[0] if files and isinstance(files[0], dict) else {}
        file_id = found.get("fileId")

        # Prefix match can return a longer name (e.g. "42/a.jpg.bak")
        if not file_id or found.get("fileName") != object_name:
            logger.info(
                "File not found on B2, nothing to delete",
                extra={"object_name": object_name}
            )
            return False

        self._transport.api_call(
            self._sessions.ensure_session(),
            "b2_delete_file_version",
            {"fileId": file_id, "fileName": object_name},
            action="B2 Delete",
            error_cls=DeleteError,
        )

        logger.info(
            "Deleted file",
            extra={"object_name": object_name, "file_id": file_id}
        )

        return True
