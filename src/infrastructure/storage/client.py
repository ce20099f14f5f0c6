"""
Object storage client for research papers and profile pictures.

Backed by Google Cloud Storage, with a mock mode for local development.
The bucket uses uniform bucket-level access, so visibility is granted via
IAM policy and objects are never uploaded with per-object ACLs.

Two result conventions:
- Uploads, bucket provisioning: raise a StorageError subclass. Callers
  hand the returned URL to users, so a silent failure is not acceptable.
- Connectivity check, delete, listing: log and return False / None.
  These are best-effort housekeeping.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Optional, Protocol

from google.api_core.iam import Policy

from ...config.settings import Settings, get_settings
from ...core.uploads.keys import (
    PDF_CONTENT_TYPE,
    build_new_profile_key,
    build_paper_key,
    build_profile_key,
    build_public_url,
    picture_content_type,
)
from ...core.uploads.models import FileType, StoredObjectMetadata
from .credentials import CredentialSource, build_gcs_client, resolve_credential_source
from .errors import (
    BucketProvisioningError,
    ConnectivityError,
    StorageError,
    UploadError,
    UploadVerificationError,
)

logger = logging.getLogger(__name__)

PUBLIC_READ_ROLE = "roles/storage.objectViewer"
PUBLIC_MEMBER = "allUsers"

# google-cloud-storage's multipart threshold (blob._MAX_MULTIPART_SIZE)
MAX_SINGLE_REQUEST_BYTES = 8 * 1024 * 1024


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StorageConfig:
    """Configuration for the Google Cloud Storage bucket."""
    bucket_name: str = "revault-files"
    public_url_base: str = "https://storage.googleapis.com"
    cache_control: str = "public, max-age=31536000"
    location: str = "ASIA-SOUTHEAST1"
    storage_class: str = "STANDARD"

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            bucket_name=settings.gcs_bucket_name,
            public_url_base=settings.gcs_public_url_base,
            cache_control=settings.gcs_cache_control,
            location=settings.gcs_bucket_location,
            storage_class=settings.gcs_storage_class,
        )


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def test_connection(self) -> bool:
        """Check the backend is reachable and the bucket exists."""
        ...

    async def upload_file(self, file_data: bytes, original_filename: str) -> str:
        """Upload a research paper PDF and return its public URL."""
        ...

    async def upload_profile_picture(
        self,
        file_data: bytes,
        original_filename: str,
        user_id: str,
    ) -> str:
        """Upload a profile picture and return its public URL."""
        ...

    async def delete_profile_picture(self, user_id: str, filename: str) -> bool:
        """Delete a stored profile picture. Returns False on any failure."""
        ...

    async def make_bucket_public(self) -> None:
        ...

    async def create_bucket_if_not_exists(self) -> None:
        ...

    async def list_bucket_files(self) -> None:
        ...

    async def list_files_by_folder(self, folder_prefix: str) -> None:
        ...


def _log_error_details(message: str, error: Exception, **context: Any) -> None:
    """Log an SDK error with whatever detail google-api-core attached."""
    details = {
        "error_type": type(error).__name__,
        "error": str(error),
        **context,
    }
    code = getattr(error, "code", None)
    if code is not None:
        details["error_code"] = code
    errors = getattr(error, "errors", None)
    if errors:
        details["error_details"] = errors
    logger.error(message, extra=details)


class GCSStorageClient:
    """
    Google Cloud Storage client.

    The google-cloud-storage SDK is synchronous, so every round-trip runs
    in a worker thread via asyncio.to_thread. The wrapped client holds only
    connection configuration and is safe to share between concurrent
    operations.
    """

    def __init__(
        self,
        config: StorageConfig,
        client: Any,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._client = client
        self._clock = clock

        logger.info(
            "Initialized GCS storage client",
            extra={"bucket": config.bucket_name}
        )

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    def _bucket(self):
        return self._client.bucket(self._config.bucket_name)

    async def test_connection(self) -> bool:
        """
        Check the backend is reachable and the target bucket exists.

        Never raises; failures are logged and reported as False.
        """
        try:
            logger.info("Testing Google Cloud Storage connection")

            buckets = await asyncio.to_thread(
                lambda: [bucket.name for bucket in self._client.list_buckets()]
            )
            logger.info(
                "Connected to Google Cloud Storage",
                extra={"buckets": buckets}
            )

            bucket = self._bucket()
            exists = await asyncio.to_thread(bucket.exists)
            if not exists:
                logger.error(
                    "Target bucket does not exist",
                    extra={"bucket": self.bucket_name}
                )
                return False

            await asyncio.to_thread(bucket.reload)
            logger.info(
                "Bucket metadata",
                extra={
                    "bucket": bucket.name,
                    "location": bucket.location,
                    "storage_class": bucket.storage_class,
                    "time_created": str(bucket.time_created),
                }
            )

            return True

        except Exception as e:
            _log_error_details("Connection test failed", e, bucket=self.bucket_name)
            return False

    async def upload_file(self, file_data: bytes, original_filename: str) -> str:
        """
        Upload a research paper PDF.

        Path structure: papers/{YYYY-MM-DD}/{base}-{uuid}{ext}
        The date is the UTC upload date.
        """
        logger.info(
            "Starting PDF upload",
            extra={
                "original_filename": original_filename,
                "size_bytes": len(file_data),
            }
        )

        try:
            now = self._clock()
            storage_path = build_paper_key(original_filename, now.date())
            metadata = StoredObjectMetadata(
                content_type=PDF_CONTENT_TYPE,
                cache_control=self._config.cache_control,
                uploaded_at=now,
                original_name=original_filename,
                file_type=FileType.RESEARCH_PAPER,
            )

            return await self._upload(
                file_data,
                storage_path,
                metadata,
                missing_message="File was not found after upload",
            )

        except StorageError as e:
            _log_error_details("Error uploading PDF file", e)
            raise type(e)(f"Failed to upload PDF file: {e}") from e
        except Exception as e:
            _log_error_details("Error uploading PDF file", e)
            raise UploadError(f"Failed to upload PDF file: {e}") from e

    async def upload_profile_picture(
        self,
        file_data: bytes,
        original_filename: str,
        user_id: str,
    ) -> str:
        """
        Upload a profile picture.

        Path structure: profiles/{user_id}/{base}-{uuid}{ext}
        Content type follows the extension, defaulting to JPEG.
        """
        logger.info(
            "Starting profile picture upload",
            extra={
                "original_filename": original_filename,
                "user_id": user_id,
                "size_bytes": len(file_data),
            }
        )

        try:
            storage_path = build_new_profile_key(user_id, original_filename)
            metadata = StoredObjectMetadata(
                content_type=picture_content_type(original_filename),
                cache_control=self._config.cache_control,
                uploaded_at=self._clock(),
                original_name=original_filename,
                file_type=FileType.PROFILE_PICTURE,
                user_id=user_id,
            )

            return await self._upload(
                file_data,
                storage_path,
                metadata,
                missing_message="Profile picture was not found after upload",
            )

        except StorageError as e:
            _log_error_details("Error uploading profile picture", e, user_id=user_id)
            raise type(e)(f"Failed to upload profile picture: {e}") from e
        except Exception as e:
            _log_error_details("Error uploading profile picture", e, user_id=user_id)
            raise UploadError(f"Failed to upload profile picture: {e}") from e

    async def _upload(
        self,
        file_data: bytes,
        storage_path: str,
        metadata: StoredObjectMetadata,
        missing_message: str,
    ) -> str:
        """Connectivity gate, upload, verify, return the public URL."""
        if not await self.test_connection():
            raise ConnectivityError("Google Cloud Storage connection failed")

        logger.info("Uploading object", extra={"storage_path": storage_path})

        blob = self._bucket().blob(storage_path)
        blob.cache_control = metadata.cache_control
        blob.metadata = metadata.tags

        # Up to MAX_SINGLE_REQUEST_BYTES the SDK sends one non-resumable
        # multipart request; above it the SDK switches to a resumable upload.
        if len(file_data) > MAX_SINGLE_REQUEST_BYTES:
            logger.warning(
                "Payload exceeds single-request limit, SDK will use a resumable upload",
                extra={
                    "storage_path": storage_path,
                    "size_bytes": len(file_data),
                    "limit_bytes": MAX_SINGLE_REQUEST_BYTES,
                }
            )

        await asyncio.to_thread(
            blob.upload_from_string,
            file_data,
            content_type=metadata.content_type,
            checksum="crc32c",
        )

        exists = await asyncio.to_thread(blob.exists)
        logger.info(
            "Object exists after upload",
            extra={"storage_path": storage_path, "exists": exists}
        )
        if not exists:
            raise UploadVerificationError(missing_message)

        await asyncio.to_thread(blob.reload)
        logger.info(
            "Uploaded object metadata",
            extra={
                "object_name": blob.name,
                "size": blob.size,
                "content_type": blob.content_type,
                "time_created": str(blob.time_created),
                "md5_hash": blob.md5_hash,
            }
        )

        public_url = build_public_url(
            self._config.public_url_base,
            self.bucket_name,
            storage_path,
        )
        logger.info("Upload complete", extra={"public_url": public_url})

        return public_url

    async def delete_profile_picture(self, user_id: str, filename: str) -> bool:
        """
        Delete a profile picture by its stored filename.

        No existence check first: a missing object surfaces as a
        NotFound from the backend and is reported as False.
        """
        storage_path = build_profile_key(user_id, filename)

        try:
            blob = self._bucket().blob(storage_path)
            await asyncio.to_thread(blob.delete)

            logger.info(
                "Deleted profile picture",
                extra={"user_id": user_id, "storage_path": storage_path}
            )
            return True

        except Exception as e:
            _log_error_details(
                "Failed to delete profile picture",
                e,
                user_id=user_id,
                storage_path=storage_path,
            )
            return False

    async def make_bucket_public(self) -> None:
        """
        Grant public read on every object in the bucket.

        Replaces the bucket's IAM bindings with a single objectViewer
        binding for allUsers. Existing bindings are not preserved.
        """
        try:
            bucket = self._bucket()
            policy = Policy()
            policy.bindings = [
                {"role": PUBLIC_READ_ROLE, "members": {PUBLIC_MEMBER}},
            ]
            await asyncio.to_thread(bucket.set_iam_policy, policy)

            logger.info(
                "Bucket is now publicly readable",
                extra={"bucket": self.bucket_name}
            )

        except Exception as e:
            _log_error_details("Error making bucket public", e, bucket=self.bucket_name)
            raise BucketProvisioningError(f"Failed to make bucket public: {e}") from e

    async def create_bucket_if_not_exists(self) -> None:
        """Create the bucket with uniform access and public read if missing."""
        try:
            bucket = self._bucket()
            exists = await asyncio.to_thread(bucket.exists)

            if exists:
                logger.info("Bucket already exists", extra={"bucket": self.bucket_name})
                return

            logger.info("Creating bucket", extra={"bucket": self.bucket_name})

            bucket.storage_class = self._config.storage_class
            bucket.iam_configuration.uniform_bucket_level_access_enabled = True
            await asyncio.to_thread(
                self._client.create_bucket,
                bucket,
                location=self._config.location,
            )

            logger.info(
                "Bucket created",
                extra={
                    "bucket": self.bucket_name,
                    "location": self._config.location,
                    "storage_class": self._config.storage_class,
                }
            )

        except Exception as e:
            _log_error_details("Error creating bucket", e, bucket=self.bucket_name)
            raise BucketProvisioningError(f"Failed to create bucket: {e}") from e

        await self.make_bucket_public()

    async def list_bucket_files(self) -> None:
        """Log every object in the bucket."""
        try:
            names = await asyncio.to_thread(self._list_names, None)
            self._log_listing(f"Files in bucket '{self.bucket_name}'", names)
        except Exception as e:
            _log_error_details("Error listing bucket files", e, bucket=self.bucket_name)

    async def list_files_by_folder(self, folder_prefix: str) -> None:
        """Log every object whose key starts with folder_prefix."""
        try:
            names = await asyncio.to_thread(self._list_names, folder_prefix)
            self._log_listing(f"Files in folder '{folder_prefix}'", names)
        except Exception as e:
            _log_error_details(
                "Error listing files in folder",
                e,
                bucket=self.bucket_name,
                prefix=folder_prefix,
            )

    def _list_names(self, prefix: Optional[str]) -> list[str]:
        blobs = self._client.list_blobs(self.bucket_name, prefix=prefix)
        return [blob.name for blob in blobs]

    def _log_listing(self, title: str, names: list[str]) -> None:
        logger.info(title)
        if not names:
            logger.info("  (No files found)")
        for name in names:
            logger.info(f"  - {name}")


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class MockObject:
    data: bytes
    content_type: str
    cache_control: str
    metadata: dict[str, str]


class MockStorageClient:
    """
    In-memory storage for local development.

    Same key layout, metadata and URLs as the real client, so code built
    against it behaves identically once pointed at GCS. Objects live in a
    dict keyed by storage path.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        bucket_exists: bool = True,
    ) -> None:
        self._config = config or StorageConfig()
        self._clock = clock
        self._bucket_exists = bucket_exists
        self._public = False
        self.objects: dict[str, MockObject] = {}
        logger.info("Initialized mock storage client (in-memory)")

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    @property
    def is_public(self) -> bool:
        return self._public

    async def test_connection(self) -> bool:
        return self._bucket_exists

    async def upload_file(self, file_data: bytes, original_filename: str) -> str:
        now = self._clock()
        storage_path = build_paper_key(original_filename, now.date())
        metadata = StoredObjectMetadata(
            content_type=PDF_CONTENT_TYPE,
            cache_control=self._config.cache_control,
            uploaded_at=now,
            original_name=original_filename,
            file_type=FileType.RESEARCH_PAPER,
        )
        return self._store(file_data, storage_path, metadata, "Failed to upload PDF file")

    async def upload_profile_picture(
        self,
        file_data: bytes,
        original_filename: str,
        user_id: str,
    ) -> str:
        storage_path = build_new_profile_key(user_id, original_filename)
        metadata = StoredObjectMetadata(
            content_type=picture_content_type(original_filename),
            cache_control=self._config.cache_control,
            uploaded_at=self._clock(),
            original_name=original_filename,
            file_type=FileType.PROFILE_PICTURE,
            user_id=user_id,
        )
        return self._store(file_data, storage_path, metadata, "Failed to upload profile picture")

    def _store(
        self,
        file_data: bytes,
        storage_path: str,
        metadata: StoredObjectMetadata,
        error_prefix: str,
    ) -> str:
        if not self._bucket_exists:
            raise ConnectivityError(f"{error_prefix}: Google Cloud Storage connection failed")

        self.objects[storage_path] = MockObject(
            data=file_data,
            content_type=metadata.content_type,
            cache_control=metadata.cache_control,
            metadata=metadata.tags,
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"storage_path": storage_path, "size_bytes": len(file_data)}
        )

        return build_public_url(self._config.public_url_base, self.bucket_name, storage_path)

    async def delete_profile_picture(self, user_id: str, filename: str) -> bool:
        storage_path = build_profile_key(user_id, filename)
        if self.objects.pop(storage_path, None) is None:
            logger.error(
                "Failed to delete profile picture",
                extra={"storage_path": storage_path, "error": "No such object"}
            )
            return False
        return True

    async def make_bucket_public(self) -> None:
        self._public = True

    async def create_bucket_if_not_exists(self) -> None:
        if not self._bucket_exists:
            self._bucket_exists = True
            await self.make_bucket_public()

    async def list_bucket_files(self) -> None:
        self._log_listing(f"Files in bucket '{self.bucket_name}'", sorted(self.objects))

    async def list_files_by_folder(self, folder_prefix: str) -> None:
        names = sorted(key for key in self.objects if key.startswith(folder_prefix))
        self._log_listing(f"Files in folder '{folder_prefix}'", names)

    def _log_listing(self, title: str, names: list[str]) -> None:
        logger.info(title)
        if not names:
            logger.info("  (No files found)")
        for name in names:
            logger.info(f"  - {name}")


# ---------------------------------------------------------------------------
# Factory Functions
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    credentials: Optional[CredentialSource] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Bucket configuration (defaults to the revault-files bucket)
        credentials: Resolved credential source (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (GCS or Mock)

    Raises:
        CredentialResolutionError: if the GCS client can't be built
    """
    config = config or StorageConfig()

    if mock_mode:
        return MockStorageClient(config)

    if credentials is None:
        raise ValueError("credentials are required when not in mock mode")

    return GCSStorageClient(config, build_gcs_client(credentials))


@lru_cache()
def get_storage_client() -> StorageClient:
    """
    Process-wide storage client built from settings.

    Credentials are resolved on the first call only; every later call
    returns the same client. Resolution errors propagate, so a bad
    credential blob stops the process before any upload is attempted.
    For tests, call get_storage_client.cache_clear() to reset.
    """
    settings = get_settings()
    config = StorageConfig.from_settings(settings)

    if settings.gcs_mock_mode:
        return create_storage_client(config, mock_mode=True)

    return create_storage_client(config, resolve_credential_source(settings))
