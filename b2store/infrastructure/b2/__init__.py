"""
Backblaze B2 native API integration.

Talks to the store over its JSON API with httpx. Includes a local
storage passthrough for hosts that keep files on disk.
"""

from .client import B2StorageClient, LocalStorageClient, StorageClient, create_storage_client
from .config import B2Config, UrlMode

__all__ = [
    "B2Config",
    "B2StorageClient",
    "LocalStorageClient",
    "StorageClient",
    "UrlMode",
    "create_storage_client",
]
