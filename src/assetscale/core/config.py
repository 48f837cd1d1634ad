"""Configuration management for AssetScale."""

import tempfile
from datetime import datetime
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "assetscale-downscaler"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # GCP Configuration
    GCP_PROJECT_ID: str = ""
    FIRESTORE_DATABASE: str = "(default)"

    # Object layout
    STAGING_DIR_NAME: str = "upload"  # Directory that receives raw user uploads
    OUTPUT_DIR_NAME: str = "images"  # Sibling directory for processed images

    # Downscale Configuration
    MAX_IMAGE_WIDTH: int = 1080  # Images wider than this get resized
    TARGET_HEIGHT: int = 1080
    SCRATCH_DIR: str = ""  # Empty = system temp dir
    RESIZE_BACKEND: str = "pillow"  # "pillow" or "imagemagick"
    IMAGEMAGICK_BINARY: str = "convert"
    RESIZE_TIMEOUT_SECONDS: int = 30

    # Signed URL Configuration
    SIGNED_URL_EXPIRES: datetime = datetime.fromisoformat("2222-01-01T00:00:00+00:00")
    SIGNING_SERVICE_ACCOUNT_EMAIL: str = ""  # Set on Cloud Run to sign via IAM signBlob

    # Origin document update
    ORIGIN_METADATA_KEY: str = "messageOrigin"
    ORIGIN_FIELD: str = "resource"

    @property
    def scratch_root(self) -> Path:
        """Get the local scratch root, defaulting to the system temp dir."""
        return Path(self.SCRATCH_DIR or tempfile.gettempdir())

    @property
    def firestore_project(self) -> str | None:
        """Get Firestore project ID from GCP_PROJECT_ID."""
        return self.GCP_PROJECT_ID or None


# Singleton settings instance
settings = Settings()
