"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without Google Cloud credentials.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Credential variables keep the names the deployment platform already
    exports (GOOGLE_CLOUD_*), so no renaming is needed on existing hosts.
    """

    # Runtime environment
    environment: str = Field(
        default="production",
        description="Runtime environment. 'development' enables the local key file."
    )

    # Google Cloud credentials
    gcp_service_key_path: str = Field(
        default="gcp-service-key.json",
        description="Service account key file, relative to the working directory. Only read in development."
    )
    google_cloud_credentials_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded service account JSON (for deployment, alternative to the key file)"
    )
    google_cloud_project_id: Optional[str] = Field(
        default=None,
        description="Project ID for discrete service account credentials"
    )
    google_cloud_client_email: Optional[str] = Field(
        default=None,
        description="Service account email for discrete credentials"
    )
    google_cloud_private_key: Optional[str] = Field(
        default=None,
        description="PEM private key for discrete credentials. Escaped \\n sequences are accepted."
    )

    # Google Cloud Storage
    gcs_default_project_id: str = Field(
        default="revault-system",
        description="Project used when the credentials don't name one"
    )
    gcs_bucket_name: str = Field(
        default="revault-files",
        description="Bucket holding research papers and profile pictures"
    )
    gcs_bucket_location: str = Field(
        default="ASIA-SOUTHEAST1",
        description="Location for a newly created bucket"
    )
    gcs_storage_class: str = Field(
        default="STANDARD",
        description="Storage class for a newly created bucket"
    )
    gcs_public_url_base: str = Field(
        default="https://storage.googleapis.com",
        description="Prefix for public object URLs"
    )
    gcs_cache_control: str = Field(
        default="public, max-age=31536000",
        description="Cache-Control header attached to every uploaded object"
    )
    gcs_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real GCS. Enables local dev without credentials."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        return self.environment.strip().lower() == "development"

    @property
    def service_key_file(self) -> Path:
        """Key file path resolved against the current working directory."""
        return Path.cwd() / self.gcp_service_key_path

    def validate_required_fields(self) -> list[str]:
        """
        Report configuration problems without raising.

        Nothing is strictly required (application default credentials
        are the last resort), but a half-configured credential triple is
        almost always a deployment mistake worth surfacing.
        """
        problems = []

        if self.gcs_mock_mode:
            return problems

        triple = {
            "GOOGLE_CLOUD_PROJECT_ID": self.google_cloud_project_id,
            "GOOGLE_CLOUD_CLIENT_EMAIL": self.google_cloud_client_email,
            "GOOGLE_CLOUD_PRIVATE_KEY": self.google_cloud_private_key,
        }
        present = [name for name, value in triple.items() if value]
        if present and len(present) < len(triple):
            missing = [name for name in triple if name not in present]
            problems.append(
                f"Incomplete credentials: {', '.join(missing)} not set"
            )

        if not self.gcs_bucket_name:
            problems.append("Missing bucket: GCS_BUCKET_NAME not set")

        return problems


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
