"""
Configuration Management
Loads settings from environment variables with type validation
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Application
    APP_NAME: str = "Document Vault"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security
    SECRET_KEY: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:4200",
        "http://localhost:8000",
    ]

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "docvault"
    POSTGRES_PASSWORD: str = "docvault_password"
    POSTGRES_DB: str = "docvault"

    # Overrides the Postgres URL when set (e.g. sqlite+aiosqlite:///./docvault.db)
    DATABASE_URL: Optional[str] = None
    DB_CREATE_TABLES: bool = True

    @property
    def POSTGRES_URL(self) -> str:
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def SQLALCHEMY_URL(self) -> str:
        return self.DATABASE_URL or self.POSTGRES_URL

    # Blob storage
    STORAGE_BACKEND: str = "filesystem"
    STORAGE_ROOT: str = "./storage"
    BLOB_READ_CHUNK_SIZE: int = 64 * 1024

    # MinIO (chunked object store backend)
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_USE_SSL: bool = False
    MINIO_BUCKET: str = "documents"
    MINIO_PART_SIZE: int = 5 * 1024 * 1024

    # File Upload
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024
    MAX_BATCH_FILES: int = 5
    ALLOWED_CONTENT_TYPES: List[str] = [
        "application/pdf",
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/webp",
        "image/gif",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    ]

    # Listing
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 50

    # Monitoring
    ENABLE_METRICS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid = ["development", "test", "staging", "production"]
        if v not in valid:
            raise ValueError(f"ENVIRONMENT must be one of {valid}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}")
        return v_upper

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        valid = ["filesystem", "minio"]
        v_lower = v.strip().lower()
        if v_lower not in valid:
            raise ValueError(f"STORAGE_BACKEND must be one of {valid}")
        return v_lower

    @field_validator("MINIO_PART_SIZE")
    @classmethod
    def validate_part_size(cls, v: int) -> int:
        # S3 multipart uploads reject parts below 5 MiB
        if v < 5 * 1024 * 1024:
            raise ValueError("MINIO_PART_SIZE must be at least 5 MiB")
        return v


# Global settings instance
settings = Settings()
