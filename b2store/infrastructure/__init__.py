"""
Infrastructure layer - external service integrations.

- b2: Backblaze B2 object storage over the native JSON API

These wrappers translate between the store's wire format and our domain models.
"""
