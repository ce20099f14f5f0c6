"""
Google Cloud credential resolution.

Four mutually exclusive sources, checked in priority order:

1. Local key file (development only)
2. Base64-encoded service account JSON
3. Discrete project id / client email / private key variables
4. Application default credentials

The first match wins even when later sources are also configured.
Resolution is split from client construction so the branch choice can
be tested without touching Google's auth libraries.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Union

from google.cloud import storage

from ...config.settings import Settings
from .errors import CredentialResolutionError

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class KeyFileCredentials:
    path: Path
    project_id: str
    mode: ClassVar[str] = "service_account_file"


@dataclass(frozen=True)
class EncodedCredentials:
    """Service account JSON decoded from the base64 environment variable."""
    info: dict[str, Any]
    project_id: str
    mode: ClassVar[str] = "base64_credentials"


@dataclass(frozen=True)
class EnvironmentCredentials:
    project_id: str
    client_email: str
    private_key: str
    mode: ClassVar[str] = "environment_credentials"

    @property
    def info(self) -> dict[str, Any]:
        """Minimal service account info accepted by google-auth."""
        return {
            "type": "service_account",
            "project_id": self.project_id,
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": TOKEN_URI,
        }


@dataclass(frozen=True)
class ApplicationDefaultCredentials:
    project_id: str
    mode: ClassVar[str] = "application_default"


CredentialSource = Union[
    KeyFileCredentials,
    EncodedCredentials,
    EnvironmentCredentials,
    ApplicationDefaultCredentials,
]


def decode_credentials_blob(blob: str) -> dict[str, Any]:
    """
    Decode a base64 service account blob into a dict.

    Accepts both the standard and the URL-safe alphabet, with or without
    padding. Raises CredentialResolutionError for anything that isn't
    base64 of a JSON object.
    """
    normalized = "".join(blob.split()).replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)

    try:
        decoded = base64.b64decode(normalized).decode("utf-8")
        info = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CredentialResolutionError(
            f"GOOGLE_CLOUD_CREDENTIALS_BASE64 is not valid base64 JSON: {e}"
        ) from e

    if not isinstance(info, dict):
        raise CredentialResolutionError(
            "GOOGLE_CLOUD_CREDENTIALS_BASE64 must decode to a JSON object"
        )

    return info


def normalize_private_key(private_key: str) -> str:
    """Turn escaped '\\n' sequences (as stored by most env UIs) into newlines."""
    return private_key.replace("\\n", "\n")


def resolve_credential_source(settings: Settings) -> CredentialSource:
    """
    Pick the credential source for this process.

    Only the presence of each variable is logged, never its value.
    """
    key_file = settings.service_key_file
    default_project = settings.gcs_default_project_id

    logger.info(
        "Resolving Google Cloud credentials",
        extra={
            "environment": settings.environment,
            "service_key_path": str(key_file),
            "service_key_exists": key_file.exists(),
            "credentials_available": {
                "project_id": bool(settings.google_cloud_project_id),
                "client_email": bool(settings.google_cloud_client_email),
                "private_key": bool(settings.google_cloud_private_key),
                "credentials_base64": bool(settings.google_cloud_credentials_base64),
            },
        }
    )

    if settings.is_development and key_file.exists():
        source: CredentialSource = KeyFileCredentials(
            path=key_file,
            project_id=default_project,
        )
    elif settings.google_cloud_credentials_base64:
        info = decode_credentials_blob(settings.google_cloud_credentials_base64)
        source = EncodedCredentials(
            info=info,
            project_id=info.get("project_id") or default_project,
        )
    elif (
        settings.google_cloud_project_id
        and settings.google_cloud_client_email
        and settings.google_cloud_private_key
    ):
        source = EnvironmentCredentials(
            project_id=settings.google_cloud_project_id,
            client_email=settings.google_cloud_client_email,
            private_key=normalize_private_key(settings.google_cloud_private_key),
        )
    else:
        source = ApplicationDefaultCredentials(project_id=default_project)

    if isinstance(source, ApplicationDefaultCredentials):
        logger.warning("Using application default credentials")
    else:
        logger.info(
            "Selected credential source",
            extra={"mode": source.mode, "project_id": source.project_id}
        )

    return source


def build_gcs_client(source: CredentialSource) -> storage.Client:
    """
    Construct an authenticated storage client for the chosen source.

    Any failure here is fatal: callers can't do anything useful without
    a client, so there is no fallback to the next source.
    """
    try:
        if isinstance(source, KeyFileCredentials):
            client = storage.Client.from_service_account_json(
                str(source.path),
                project=source.project_id,
            )
        elif isinstance(source, (EncodedCredentials, EnvironmentCredentials)):
            client = storage.Client.from_service_account_info(
                source.info,
                project=source.project_id,
            )
        elif isinstance(source, ApplicationDefaultCredentials):
            client = storage.Client(project=source.project_id)
        else:
            raise CredentialResolutionError(
                f"Unknown credential source: {type(source).__name__}"
            )
    except CredentialResolutionError:
        raise
    except Exception as e:
        logger.error(
            "Failed to initialize Google Cloud Storage",
            extra={"mode": source.mode, "error": str(e)}
        )
        raise CredentialResolutionError(
            f"Failed to initialize Google Cloud Storage: {e}"
        ) from e

    logger.info(
        "Initialized Google Cloud Storage client",
        extra={"mode": source.mode, "project_id": source.project_id}
    )

    return client
