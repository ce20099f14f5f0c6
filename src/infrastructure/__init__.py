"""
Infrastructure layer - external service integrations.

- storage: Object storage (Google Cloud Storage)

These wrappers translate between the SDK and our domain models.
"""
