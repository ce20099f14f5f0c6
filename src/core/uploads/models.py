"""
Domain models for stored files.

These models describe what we put into the bucket and how it is labelled.
They have no dependency on the storage SDK, so key layout and metadata
rules can be tested without a backend.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class UploadCategory(Enum):
    """Top-level folder in the bucket."""
    PAPERS = "papers"
    PROFILES = "profiles"


class FileType(Enum):
    """Value of the fileType metadata tag."""
    RESEARCH_PAPER = "research_paper"
    PROFILE_PICTURE = "profile_picture"


@dataclass(frozen=True)
class StoredObjectMetadata:
    """
    Everything attached to an object at upload time.

    Frozen because metadata is only ever replaced by re-uploading.
    Tag names stay camelCase, and uploadedAt keeps the millisecond 'Z'
    format, so objects written by earlier versions of the uploader carry
    the same keys and values.
    """
    content_type: str
    cache_control: str
    uploaded_at: datetime
    original_name: str
    file_type: FileType
    user_id: Optional[str] = None

    @property
    def tags(self) -> dict[str, str]:
        """Custom metadata as sent to the backend."""
        tags = {
            "uploadedAt": format_timestamp(self.uploaded_at),
            "originalName": self.original_name,
        }
        if self.user_id is not None:
            tags["userId"] = self.user_id
        tags["fileType"] = self.file_type.value
        return tags


def format_timestamp(value: datetime) -> str:
    """UTC, millisecond precision, 'Z' suffix: 2024-01-15T09:30:00.000Z"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
