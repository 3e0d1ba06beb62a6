"""
Configuration for the B2 client.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...core.storage import BucketIdentity, Credentials

DEFAULT_AUTH_URL = "https://api.backblazeb2.com"
DEFAULT_CACHE_CONTROL_SECONDS = 86400


class UrlMode(Enum):
    """How public URLs are derived when no override applies."""
    FAST = "fast"                    # offline, from config and cached session
    AUTHORITATIVE = "authoritative"  # authorizes and uses the download URL


@dataclass(frozen=True)
class B2Config:
    """
    Connection and behaviour settings for one B2 client.

    Built by `Settings.to_b2_config()` from the environment, or directly
    in tests. Values are checked once here so the uploaders and the URL
    resolver can trust them. The two timeouts apply per request: the
    metadata one to JSON API calls, the data one to upload bodies.
    """
    credentials: Credentials
    bucket: BucketIdentity
    use_ssl: bool = True
    use_custom_domain: bool = False
    custom_domain: str = ""
    local_storage: bool = False
    cache_control_seconds: Optional[int] = DEFAULT_CACHE_CONTROL_SECONDS
    url_mode: UrlMode = UrlMode.FAST
    auth_url: str = DEFAULT_AUTH_URL
    part_upload_workers: int = 1
    metadata_timeout: float = 30.0
    data_timeout: float = 300.0

    def __post_init__(self) -> None:
        if self.cache_control_seconds is not None and self.cache_control_seconds < 0:
            raise ValueError("cache_control_seconds cannot be negative")
        if self.part_upload_workers < 1:
            raise ValueError("part_upload_workers must be at least 1")
        if self.metadata_timeout <= 0 or self.data_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if not self.auth_url:
            raise ValueError("auth_url is required")

    @property
    def scheme(self) -> str:
        return "https" if self.use_ssl else "http"
