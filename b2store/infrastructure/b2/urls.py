"""
Public URL derivation for stored objects.

The store serves public files from two kinds of host:
- Friendly:  https://f005.backblazeb2.com/file/<bucket>/<name>
- Native:    https://f<account hash>.backblazeb2.com/file/<bucket>/<name>

The friendly host is keyed by a three-digit region that also appears in
the API host (api005.backblazeb2.com). Pulling the region out of a
hostname is a heuristic against the store's naming conventions, not an
API contract, so it always has a default to fall back to.
"""

import logging
import re
from typing import Optional

from ...core.storage import StorageError, build_object_name
from .config import B2Config, UrlMode
from .session import SessionManager

logger = logging.getLogger(__name__)

B2_DOMAIN = "backblazeb2.com"

# us-east, used when the API host doesn't reveal a region
DEFAULT_REGION = "005"

_API_REGION_RE = re.compile(r"api(\d{3})\.backblazeb2\.com")
_DOWNLOAD_HOST_RE = re.compile(r"https?://([^.]+)\.backblazeb2\.com")
_ACCOUNT_HOST_RE = re.compile(r"^f[0-9a-f]{12,}$", re.IGNORECASE)


def region_from_api_url(api_url: Optional[str]) -> Optional[str]:
    """Region code embedded in an API URL, or None if it has none."""
    if not api_url:
        return None
    match = _API_REGION_RE.search(api_url)
    return match.group(1) if match else None


class UrlResolver:
    """Builds the URL a browser should use to fetch an object."""

    def __init__(self, config: B2Config, sessions: SessionManager) -> None:
        self._config = config
        self._sessions = sessions

    def resolve(self, owner_id, filename: str, fallback_url: str = "") -> str:
        """
        Resolve the public URL for <owner_id>/<filename>.

        `fallback_url` is whatever URL the host already has (usually the
        local copy). It is returned as-is in local storage mode, and when
        authoritative resolution can't reach the store.
        """
        if self._config.local_storage:
            return fallback_url

        object_name = build_object_name(owner_id, filename)

        custom = self.custom_domain_url(object_name)
        if custom is not None:
            return custom

        if self._config.url_mode is UrlMode.AUTHORITATIVE:
            return self.authoritative_url(object_name, fallback_url)
        return self.fast_url(object_name)

    def custom_domain_url(self, object_name: str) -> Optional[str]:
        domain = self._config.custom_domain.strip().strip("/")
        if not self._config.use_custom_domain or not domain:
            return None
        return f"{self._config.scheme}://{domain}/{object_name}"

    def fast_url(self, object_name: str) -> str:
        """
        Friendly URL without any network call.

        Uses the API URL of a session only if one is already cached.
        """
        session = self._sessions.session
        region = region_from_api_url(session.api_url if session else None)
        return self._friendly_url(region or DEFAULT_REGION, object_name)

    def authoritative_url(self, object_name: str, fallback_url: str = "") -> str:
        """Derive the URL from the download host returned by authorization."""
        try:
            session = self._sessions.ensure_session()
        except StorageError as e:
            logger.warning(
                "Cannot get B2 URL, using fallback",
                extra={"object_name": object_name, "error": str(e)}
            )
            return fallback_url

        match = _DOWNLOAD_HOST_RE.match(session.download_url)
        if match and _ACCOUNT_HOST_RE.match(match.group(1)):
            region = region_from_api_url(session.api_url)
            if region:
                return self._friendly_url(region, object_name)

        return f"{session.download_url}/file/{self._config.bucket.bucket_name}/{object_name}"

    def _friendly_url(self, region: str, object_name: str) -> str:
        return (
            f"{self._config.scheme}://f{region}.{B2_DOMAIN}"
            f"/file/{self._config.bucket.bucket_name}/{object_name}"
        )
