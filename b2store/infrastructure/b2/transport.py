"""
HTTP transport for the B2 native API.

Wraps an httpx.Client and turns every failure into our error taxonomy.
Each call is a single blocking request: there are no retries here, and
a failed call aborts whatever operation issued it.

Error messages are enriched with the HTTP status and the store's
structured error body ({"status", "code", "message"}) so the host can
show something useful without knowing the protocol.
"""

import logging
from typing import Any, Callable, Optional

import httpx

from ...core.storage import Session, StorageError

logger = logging.getLogger(__name__)

API_PREFIX = "/b2api/v2"


def _error_detail(response: httpx.Response) -> tuple[Optional[str], Optional[str]]:
    """Pull (code, message) out of an error response, tolerating non-JSON bodies."""
    try:
        data = response.json()
    except ValueError:
        text = response.text.strip()
        return None, text or None

    if isinstance(data, dict):
        return data.get("code"), data.get("message") or None
    return None, None


class B2Transport:
    """
    Thin request layer shared by every component of one client.

    `on_unauthorized` is called with the session a request was made under
    whenever the store answers 401, which is how the cached session
    learns it has gone stale.
    """

    def __init__(
        self,
        http: httpx.Client,
        metadata_timeout: float = 30.0,
        data_timeout: float = 300.0,
    ) -> None:
        self._http = http
        self._metadata_timeout = metadata_timeout
        self._data_timeout = data_timeout
        self.on_unauthorized: Optional[Callable[[Session], None]] = None

    def close(self) -> None:
        self._http.close()

    def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str],
        action: str,
        error_cls: type[StorageError],
    ) -> dict[str, Any]:
        """GET a metadata endpoint and return the decoded JSON body."""
        response = self._send(
            "GET", url,
            headers=headers,
            timeout=self._metadata_timeout,
            action=action,
            error_cls=error_cls,
        )
        return self._decode(response, action, error_cls)

    def api_call(
        self,
        session: Session,
        operation: str,
        payload: dict[str, Any],
        *,
        action: str,
        error_cls: type[StorageError],
    ) -> dict[str, Any]:
        """
        POST a JSON payload to {apiUrl}/b2api/v2/<operation>.

        The store expects the bare account token in the Authorization
        header, not a "Bearer" scheme.
        """
        url = f"{session.api_url}{API_PREFIX}/{operation}"
        response = self._send(
            "POST", url,
            headers={"Authorization": session.authorization_token},
            json=payload,
            timeout=self._metadata_timeout,
            action=action,
            error_cls=error_cls,
            session=session,
        )
        return self._decode(response, action, error_cls)

    def upload(
        self,
        url: str,
        data: bytes,
        *,
        headers: dict[str, str],
        action: str,
        error_cls: type[StorageError],
        session: Optional[Session] = None,
    ) -> dict[str, Any]:
        """POST raw bytes to an upload URL with the long data timeout."""
        response = self._send(
            "POST", url,
            headers=headers,
            content=data,
            timeout=self._data_timeout,
            action=action,
            error_cls=error_cls,
            session=session,
        )
        return self._decode(response, action, error_cls)

    def _send(
        self,
        method: str,
        url: str,
        *,
        action: str,
        error_cls: type[StorageError],
        timeout: float,
        session: Optional[Session] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = self._http.request(method, url, timeout=timeout, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "B2 request failed",
                extra={"action": action, "error": str(e)}
            )
            raise error_cls(f"{action} transport error: {e}") from e

        if (
            response.status_code == 401
            and session is not None
            and self.on_unauthorized is not None
        ):
            self.on_unauthorized(session)

        if response.status_code != 200:
            code, message = _error_detail(response)
            error_msg = f"{action} failed (HTTP {response.status_code})"
            if message:
                error_msg += f": {message}"
            logger.error(
                "B2 request rejected",
                extra={
                    "action": action,
                    "status": response.status_code,
                    "code": code,
                }
            )
            raise error_cls(error_msg, status_code=response.status_code, code=code)

        return response

    @staticmethod
    def _decode(
        response: httpx.Response,
        action: str,
        error_cls: type[StorageError],
    ) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise error_cls(
                f"{action} returned an invalid response",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise error_cls(
                f"{action} returned an invalid response",
                status_code=response.status_code,
            )
        return data
