from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Quote Short Links"
    app_version: str = "1.0.0"
    secret_key: str = "your-secret-key-here-change-in-production"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    public_base_url: str = "http://127.0.0.1:8000"

    # Slug generation strategy
    slug_strategy: str = "sha256"  # Options: "sha256", "blake2b"

    # Short link store
    store_backend: str = "sqlalchemy"  # Options: "sqlalchemy", "redis", "dynamodb", "memory"
    database_url: str = "sqlite:///./short_links.db"
    redis_url: str = "redis://localhost:6379/0"
    short_links_table_name: str = "short-links"
    aws_region: str = "us-east-1"
    dynamodb_endpoint_url: Optional[str] = None

    # Signed URL provider
    signer_backend: str = "s3"  # Options: "s3", "local"
    pdf_bucket_name: str = "quote-pdfs"
    s3_endpoint_url: Optional[str] = None
    local_files_dir: str = "./local_files"  # Served by /files when signer_backend is "local"

    # Presigned URL cache tuning
    presigned_ttl_seconds: int = 604800  # 7 days
    refresh_buffer_seconds: int = 60
    credential_safety_margin_seconds: int = 300

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @model_validator(mode="after")
    def check_presigned_timing(self) -> "Settings":
        """The safety margin must leave some lifetime on every issued URL."""
        if self.presigned_ttl_seconds <= 0:
            raise ValueError("presigned_ttl_seconds must be positive")
        if self.refresh_buffer_seconds < 0:
            raise ValueError("refresh_buffer_seconds must not be negative")
        if not 0 <= self.credential_safety_margin_seconds < self.presigned_ttl_seconds:
            raise ValueError(
                "credential_safety_margin_seconds must be in [0, presigned_ttl_seconds)"
            )
        return self


# Create settings instance
settings = Settings()
