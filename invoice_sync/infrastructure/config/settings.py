from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "Invoice Sync"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str | None = None  # Overrides the debug-derived level, e.g. "WARNING"

    # Database
    database_url: str = ""  # Loaded from environment, validated in model_validator
    database_echo: bool = False

    # Storage
    storage_backend: str = "s3"  # Only "s3" is supported for attachments
    s3_bucket: str | None = None  # Required for S3 backend
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None  # For MinIO/LocalStack
    s3_access_key: str | None = None  # Optional, uses IAM role if not provided
    s3_secret_key: str | None = None  # Optional, uses IAM role if not provided

    # Processing queue
    sqs_queue_url: str | None = None
    sqs_region: str = "us-east-1"
    sqs_endpoint_url: str | None = None

    # Google OAuth client (Gmail)
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_token_uri: str = "https://oauth2.googleapis.com/token"

    # Microsoft OAuth client (Outlook / Graph)
    microsoft_client_id: str | None = None
    microsoft_client_secret: str | None = None
    microsoft_authority: str = "https://login.microsoftonline.com/common"
    microsoft_graph_url: str = "https://graph.microsoft.com/v1.0"

    # Sync engine
    token_refresh_leeway_seconds: int = 60
    invoice_keyword: str = "invoice"  # Empty string disables the keyword filter
    gmail_max_messages: int = 500
    outlook_page_size: int = 100
    outlook_mark_read: bool = False
    provider_timeout_seconds: float = 30.0

    # Periodic sync (every 5 minutes by default)
    sync_schedule_enabled: bool = False
    sync_interval_seconds: int = 300

    @model_validator(mode="after")
    def validate_storage_config(self) -> "Settings":
        """Validate required configuration"""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")

        # Validate storage backend
        if self.storage_backend == "s3":
            if not self.s3_bucket:
                raise ValueError(
                    "s3_bucket is required when storage_backend is 's3'. "
                    "Set S3_BUCKET environment variable or update .env file."
                )
        else:
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. Must be 's3'"
            )

        if self.sync_interval_seconds <= 0:
            raise ValueError("sync_interval_seconds must be positive")
        if self.token_refresh_leeway_seconds < 0:
            raise ValueError("token_refresh_leeway_seconds must not be negative")
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="allow", case_sensitive=False
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
