"""
Authorization state for one client instance.

The session is shared by every component of a client. Reads are cheap
and lock-free; acquiring a new session goes through a lock so that
concurrent callers (e.g. parallel part uploads) wait for one in-flight
authorization instead of each issuing their own.
"""

import base64
import logging
import threading
from typing import Optional

from ...core.storage import AuthError, Credentials, Session
from .transport import API_PREFIX, B2Transport

logger = logging.getLogger(__name__)


class SessionManager:
    """Obtains and caches the account authorization."""

    def __init__(
        self,
        credentials: Credentials,
        transport: B2Transport,
        auth_url: str,
    ) -> None:
        self._credentials = credentials
        self._transport = transport
        self._auth_url = auth_url.rstrip("/")
        self._session: Optional[Session] = None
        self._lock = threading.Lock()
        transport.on_unauthorized = self.invalidate

    @property
    def session(self) -> Optional[Session]:
        """The cached session, if any. Never touches the network."""
        return self._session

    def ensure_session(self) -> Session:
        """
        Return the cached session, authorizing first if there is none.

        Raises:
            AuthError: credentials are empty (checked before any request),
                or the authorization call failed.
        """
        session = self._session
        if session is not None:
            return session

        with self._lock:
            # Another thread may have finished authorizing while we waited
            if self._session is not None:
                return self._session
            self._session = self._authorize()
            return self._session

    def invalidate(self, stale: Optional[Session] = None) -> None:
        """
        Drop the cached session; the next call authorizes again.

        With `stale`, the cache is only cleared if it still holds that
        session. A late 401 for an old token must not discard a session
        another caller has just obtained.
        """
        if stale is not None and self._session is not stale:
            return
        if self._session is not None:
            logger.info("B2 session invalidated")
        self._session = None

    def _authorize(self) -> Session:
        if not self._credentials.is_complete:
            raise AuthError("B2 credentials not configured")

        pair = f"{self._credentials.key_id}:{self._credentials.application_key}"
        encoded = base64.b64encode(pair.encode("utf-8")).decode("ascii")

        data = self._transport.get_json(
            f"{self._auth_url}{API_PREFIX}/b2_authorize_account",
            headers={"Authorization": f"Basic {encoded}"},
            action="B2 Authentication",
            error_cls=AuthError,
        )

        token = data.get("authorizationToken")
        api_url = data.get("apiUrl")
        if not token or not api_url:
            raise AuthError("B2 Authentication response missing required fields")

        session = Session(
            authorization_token=token,
            api_url=api_url.rstrip("/"),
            download_url=(data.get("downloadUrl") or "").rstrip("/"),
            account_id=data.get("accountId"),
        )

        logger.info(
            "Authorized with B2",
            extra={"api_url": session.api_url, "account_id": session.account_id}
        )

        return session
