"""
Object key construction.

Layout:
    papers/<YYYY-MM-DD>/<base>-<uuid><ext>
    profiles/<user_id>/<base>-<uuid><ext>

The uuid suffix is generated per call, so two uploads of files with the
same original name never land on the same key.
"""

import os
from datetime import date
from typing import Optional
from uuid import uuid4

from .models import UploadCategory


PDF_CONTENT_TYPE = "application/pdf"
DEFAULT_PICTURE_CONTENT_TYPE = "image/jpeg"

PICTURE_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def split_filename(filename: str) -> tuple[str, str]:
    """
    Split a filename into (base, extension).

    Any directory part is dropped. The extension keeps its leading dot
    and original case; dotfiles like '.env' have no extension.
    """
    return os.path.splitext(os.path.basename(filename))


def build_unique_filename(original_filename: str, unique_id: Optional[str] = None) -> str:
    """Append a fresh uuid to the base name, keeping the extension."""
    base, ext = split_filename(original_filename)
    suffix = unique_id if unique_id is not None else str(uuid4())
    return f"{base}-{suffix}{ext}"


def build_paper_key(
    original_filename: str,
    upload_date: date,
    unique_id: Optional[str] = None,
) -> str:
    """Date-partitioned key for a research paper."""
    filename = build_unique_filename(original_filename, unique_id)
    return f"{UploadCategory.PAPERS.value}/{upload_date.isoformat()}/{filename}"


def build_profile_key(user_id: str, filename: str) -> str:
    """
    User-partitioned key for a profile picture.

    Takes the already-unique stored filename, so delete can rebuild the
    key from what the caller saved.
    """
    return f"{UploadCategory.PROFILES.value}/{user_id}/{filename}"


def build_new_profile_key(
    user_id: str,
    original_filename: str,
    unique_id: Optional[str] = None,
) -> str:
    return build_profile_key(user_id, build_unique_filename(original_filename, unique_id))


def picture_content_type(filename: str) -> str:
    """Content type from the extension; case-insensitive, JPEG when unknown."""
    _, ext = split_filename(filename)
    return PICTURE_CONTENT_TYPES.get(ext.lower(), DEFAULT_PICTURE_CONTENT_TYPE)


def build_public_url(url_base: str, bucket_name: str, object_key: str) -> str:
    """
    Public URL for an object.

    Built locally rather than fetched, so it only resolves while the
    bucket grants public read.
    """
    return f"{url_base.rstrip('/')}/{bucket_name}/{object_key}"
