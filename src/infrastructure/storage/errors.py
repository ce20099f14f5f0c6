"""
Storage exceptions.

Trust-critical operations (client construction, uploads, bucket
provisioning) raise these. Best-effort operations (connectivity check,
delete, listing) log and return instead.
"""


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


class CredentialResolutionError(StorageError):
    """Credentials could not be decoded or were rejected while building the client."""
    pass


class ConnectivityError(StorageError):
    """The backend or the target bucket is unreachable."""
    pass


class UploadError(StorageError):
    """The backend rejected an upload."""
    pass


class UploadVerificationError(UploadError):
    """The SDK reported success but the object is not there."""
    pass


class BucketProvisioningError(StorageError):
    """Bucket creation or IAM policy update failed."""
    pass
