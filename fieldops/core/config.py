"""Configuration management for fieldops."""

from decimal import Decimal
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    sqlite_db_path: str = Field(default="./data/fieldops.db", description="SQLite database file path")

    # Identity Configuration
    secret_key: str | None = Field(default=None, description="Secret used to sign and verify identity tokens")
    identity_token_max_age_seconds: int = Field(
        default=7 * 24 * 3600, description="Maximum accepted age of an identity token (in seconds)"
    )

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Locale Configuration
    default_timezone: str = Field(default="Asia/Ho_Chi_Minh", description="IANA timezone used for reports")
    default_currency: str = Field(default="VND", description="Currency code for revenue and payments")

    # Storage Configuration
    storage_provider: str = Field(default="local", description="Attachment storage backend")
    upload_root: str = Field(default="./.uploads", description="Root directory for the local disk provider")
    attachment_url_ttl_seconds: int = Field(default=3600, description="Lifetime of signed attachment URLs")
    upload_max_files: int = Field(default=10, description="Maximum number of files per upload")
    upload_max_per_file_mb: int = Field(default=50, description="Maximum size of a single uploaded file (MB)")
    upload_max_total_mb: int = Field(default=50, description="Maximum combined size of one upload (MB)")
    upload_allowed_mime_types: list[str] = Field(
        default=[
            "application/pdf",
            "image/jpeg",
            "image/png",
            "image/webp",
            "image/heic",
            "image/heif",
            "video/mp4",
            "video/quicktime",
            "video/webm",
        ],
        description="MIME types accepted for attachments",
    )

    # Check-in Configuration
    location_threshold_meters: float = Field(
        default=100.0, description="Distance from the task location before a check-in warning is raised"
    )

    # Report Configuration
    report_max_range_days: int = Field(default=365, description="Longest date range a report may cover")

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production."""
        return self.environment == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    DEFAULT_PER_PAGE_LIMIT: int = 100

    # Text limits
    TASK_TITLE_MIN_LENGTH: int = 2
    TASK_TITLE_MAX_LENGTH: int = 100
    COMMENT_MAX_LENGTH: int = 5000
    COMMENT_MAX_FILES: int = 5
    EVENT_NOTES_MAX_LENGTH: int = 500
    PAYMENT_NOTES_MAX_LENGTH: int = 500
    EDIT_REASON_MIN_LENGTH: int = 10
    EDIT_REASON_MAX_LENGTH: int = 500

    # Money
    MAX_MONEY_AMOUNT: Decimal = Decimal("10000000000")  # 10 billion VND

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
