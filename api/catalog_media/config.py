"""Application configuration."""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "catalog_media"
    postgres_password: str = "changeme"
    postgres_db: str = "catalog_media_db"
    database_url_override: Optional[str] = None

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # Storage
    storage_provider: str = "local"
    storage_base_path: str = "./storage"
    storage_public_base_url: str = "/media"
    media_mount_path: str = "/media"
    product_images_bucket: str = "product-images"
    user_avatars_bucket: str = "user-avatars"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None

    # Compression presets
    product_image_max_dimension: int = 4000
    product_image_quality: float = 0.95
    avatar_max_dimension: int = 800
    avatar_quality: float = 0.9
    avatar_max_size_bytes: int = 2 * 1024 * 1024

    # Environment
    environment: str = "development"

    @property
    def database_url(self) -> str:
        """Build database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
