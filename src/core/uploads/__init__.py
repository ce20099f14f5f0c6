"""
Upload domain: object key layout, content types and metadata tags.
"""

from .keys import (
    build_new_profile_key,
    build_paper_key,
    build_profile_key,
    build_public_url,
    build_unique_filename,
    picture_content_type,
)
from .models import FileType, StoredObjectMetadata, UploadCategory

__all__ = [
    "FileType",
    "StoredObjectMetadata",
    "UploadCategory",
    "build_new_profile_key",
    "build_paper_key",
    "build_profile_key",
    "build_public_url",
    "build_unique_filename",
    "picture_content_type",
]
