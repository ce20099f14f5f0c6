"""
Object storage integration for research papers and profile pictures.

Backed by Google Cloud Storage.
Includes mock mode for local development without credentials.
"""

from .client import (
    GCSStorageClient,
    MockStorageClient,
    StorageClient,
    StorageConfig,
    create_storage_client,
    get_storage_client,
)
from .credentials import (
    ApplicationDefaultCredentials,
    CredentialSource,
    EncodedCredentials,
    EnvironmentCredentials,
    KeyFileCredentials,
    build_gcs_client,
    resolve_credential_source,
)
from .errors import (
    BucketProvisioningError,
    ConnectivityError,
    CredentialResolutionError,
    StorageError,
    UploadError,
    UploadVerificationError,
)

__all__ = [
    "ApplicationDefaultCredentials",
    "BucketProvisioningError",
    "ConnectivityError",
    "CredentialResolutionError",
    "CredentialSource",
    "EncodedCredentials",
    "EnvironmentCredentials",
    "GCSStorageClient",
    "KeyFileCredentials",
    "MockStorageClient",
    "StorageClient",
    "StorageConfig",
    "StorageError",
    "UploadError",
    "UploadVerificationError",
    "build_gcs_client",
    "create_storage_client",
    "get_storage_client",
    "resolve_credential_source",
]
