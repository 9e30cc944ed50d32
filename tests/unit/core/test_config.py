"""
Unit Tests for Configuration Management
Tests for docvault/core/config.py
"""

import pytest
from pydantic import ValidationError

from docvault.core.config import Settings, settings

SECRET = "x" * 32


@pytest.mark.unit
class TestSettingsDefaults:
    """Test default settings values"""

    def test_upload_limits(self):
        """Test upload limits"""
        assert settings.MAX_UPLOAD_SIZE_BYTES == 10 * 1024 * 1024
        assert settings.MAX_BATCH_FILES == 5

    def test_page_sizes(self):
        """Test listing page sizes"""
        assert settings.DEFAULT_PAGE_SIZE == 20
        assert settings.MAX_PAGE_SIZE == 50

    def test_allowed_content_types(self):
        """Test allow-list contains the common document types"""
        assert "application/pdf" in settings.ALLOWED_CONTENT_TYPES
        assert "image/png" in settings.ALLOWED_CONTENT_TYPES
        assert "text/plain" in settings.ALLOWED_CONTENT_TYPES
        assert "application/x-msdownload" not in settings.ALLOWED_CONTENT_TYPES

    def test_storage_defaults(self):
        """Test storage backend defaults"""
        assert settings.MINIO_BUCKET == "documents"
        assert settings.MINIO_PART_SIZE == 5 * 1024 * 1024


@pytest.mark.unit
class TestSettingsValidation:
    """Test field validators"""

    def test_secret_key_too_short(self):
        """Test short SECRET_KEY is rejected"""
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY="short")

    def test_invalid_environment(self):
        """Test unknown ENVIRONMENT is rejected"""
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY=SECRET, ENVIRONMENT="qa")

    def test_log_level_uppercased(self):
        """Test LOG_LEVEL is normalized"""
        assert Settings(SECRET_KEY=SECRET, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self):
        """Test unknown LOG_LEVEL is rejected"""
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY=SECRET, LOG_LEVEL="verbose")

    def test_storage_backend_lowercased(self):
        """Test STORAGE_BACKEND is normalized"""
        assert Settings(SECRET_KEY=SECRET, STORAGE_BACKEND="MinIO").STORAGE_BACKEND == "minio"

    def test_invalid_storage_backend(self):
        """Test unknown STORAGE_BACKEND is rejected"""
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY=SECRET, STORAGE_BACKEND="gridfs")

    def test_part_size_minimum(self):
        """Test multipart chunk size below 5MiB is rejected"""
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY=SECRET, MINIO_PART_SIZE=1024)

    def test_database_url_override(self):
        """Test DATABASE_URL takes precedence over the Postgres URL"""
        config = Settings(SECRET_KEY=SECRET, DATABASE_URL="sqlite+aiosqlite:///./x.db")
        assert config.SQLALCHEMY_URL == "sqlite+aiosqlite:///./x.db"

    def test_postgres_url(self):
        """Test Postgres URL uses asyncpg"""
        config = Settings(SECRET_KEY=SECRET, DATABASE_URL=None, POSTGRES_HOST="db")
        assert config.SQLALCHEMY_URL.startswith("postgresql+asyncpg://")
        assert "@db:5432/" in config.SQLALCHEMY_URL
