"""
Configuration using Pydantic settings.

Configuration comes from environment variables with sensible defaults.
Supports local storage mode for running without B2 credentials.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
