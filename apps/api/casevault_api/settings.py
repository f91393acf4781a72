"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "casevault"
    postgres_password: str = "casevault_dev_password"
    postgres_db: str = "casevault"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    # MinIO / S3 (evidence files)
    minio_endpoint: str = "localhost:9000"
    minio_access_key: Optional[str] = None  # Required in non-dev
    minio_secret_key: Optional[str] = None  # Required in non-dev
    minio_bucket: str = "casevault-evidence"
    minio_use_ssl: bool = False

    # API
    api_port: int = 8000
    api_host: str = "0.0.0.0"
    secret_key: str = "dev-secret-key-change-in-production"
    admin_token: str = "dev-admin-token-change-in-production"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Evidence
    evidence_max_upload_bytes: int = 512 * 1024 * 1024
    evidence_signed_url_ttl: int = 3600  # 1 hour

    # Audit ledger
    ledger_lock_timeout_seconds: float = 30.0

    # Case numbering
    case_number_prefix: str = "CASE"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() in ("development", "test", "dev")

    def validate_production_settings(self):
        """Validate settings for production environment."""
        if self.is_development:
            return
        if not self.minio_access_key or not self.minio_secret_key:
            raise ValueError(
                "MINIO_ACCESS_KEY and MINIO_SECRET_KEY are required in production. "
                "Do not use default credentials."
            )
        if self.secret_key.startswith("dev-"):
            raise ValueError("SECRET_KEY must be set explicitly outside development.")
        if self.admin_token.startswith("dev-"):
            raise ValueError("ADMIN_TOKEN must be set explicitly outside development.")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
