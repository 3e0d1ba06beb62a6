"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and a .env file)
with sensible defaults. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Local storage mode lets the host run without any B2 credentials.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.storage import BucketIdentity, BucketType, Credentials
from ..infrastructure.b2.config import (
    DEFAULT_AUTH_URL,
    DEFAULT_CACHE_CONTROL_SECONDS,
    B2Config,
    UrlMode,
)


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    # Credentials
    b2_key_id: str = Field(
        default="",
        description="Application key ID used for authorization"
    )
    b2_application_key: str = Field(
        default="",
        description="Application key. Keep this secret."
    )

    # Bucket
    b2_bucket_name: str = Field(
        default="",
        description="Bucket name. The bucket must exist beforehand."
    )
    b2_bucket_id: str = Field(
        default="",
        description="Bucket ID, from the bucket settings page"
    )
    b2_bucket_type: Literal["allPublic", "allPrivate"] = Field(
        default="allPublic",
        description="Public buckets allow direct URL access"
    )

    # URLs
    b2_use_ssl: bool = Field(
        default=True,
        description="Use https for file URLs"
    )
    b2_use_custom_domain: bool = Field(
        default=False,
        description="Serve files from a custom domain (CNAME pointing to B2)"
    )
    b2_custom_domain: str = Field(
        default="",
        description="Custom domain, e.g. cdn.example.com. Only used with b2_use_custom_domain."
    )
    b2_url_mode: Literal["fast", "authoritative"] = Field(
        default="fast",
        description="fast derives URLs offline; authoritative asks the store for its download host"
    )

    # Storage behaviour
    b2_local_storage: bool = Field(
        default=False,
        description="Keep files local instead of uploading. URLs point at the local copy."
    )
    b2_cache_control: int = Field(
        default=DEFAULT_CACHE_CONTROL_SECONDS,
        ge=0,
        description="Cache-Control max-age in seconds for uploaded files. 0 disables the header."
    )
    b2_part_upload_workers: int = Field(
        default=1,
        ge=1,
        description="Parallel part uploads for large files. 1 uploads parts one at a time."
    )

    # Transport
    b2_auth_url: str = Field(
        default=DEFAULT_AUTH_URL,
        description="Base URL for account authorization"
    )
    b2_metadata_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for API calls without a payload"
    )
    b2_data_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Timeout in seconds for calls that carry file data"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def validate_required_fields(self) -> list[str]:
        """
        Return the environment variables that must be set but aren't.

        Nothing is required in local storage mode.
        """
        missing = []

        if self.b2_local_storage:
            return missing

        if not self.b2_key_id:
            missing.append("B2_KEY_ID")
        if not self.b2_application_key:
            missing.append("B2_APPLICATION_KEY")
        if not self.b2_bucket_name:
            missing.append("B2_BUCKET_NAME")
        if not self.b2_bucket_id:
            missing.append("B2_BUCKET_ID")
        if self.b2_use_custom_domain and not self.b2_custom_domain.strip():
            missing.append("B2_CUSTOM_DOMAIN")

        return missing

    def to_b2_config(self) -> B2Config:
        """Build the immutable client configuration."""
        return B2Config(
            credentials=Credentials(
                key_id=self.b2_key_id,
                application_key=self.b2_application_key,
            ),
            bucket=BucketIdentity(
                bucket_id=self.b2_bucket_id,
                bucket_name=self.b2_bucket_name,
                bucket_type=BucketType(self.b2_bucket_type),
            ),
            use_ssl=self.b2_use_ssl,
            use_custom_domain=self.b2_use_custom_domain,
            custom_domain=self.b2_custom_domain,
            local_storage=self.b2_local_storage,
            cache_control_seconds=self.b2_cache_control,
            url_mode=UrlMode(self.b2_url_mode),
            auth_url=self.b2_auth_url,
            part_upload_workers=self.b2_part_upload_workers,
            metadata_timeout=self.b2_metadata_timeout,
            data_timeout=self.b2_data_timeout,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
