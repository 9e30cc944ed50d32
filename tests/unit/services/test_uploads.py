"""
Unit Tests for Upload Validation
Tests for docvault/services/uploads.py
"""

import pytest

from docvault.core.config import settings
from docvault.core.exceptions import ValidationException
from docvault.services.uploads import (
    FileUpload,
    derive_title,
    normalize_tags,
    validate_description,
    validate_title,
    validate_upload,
)


@pytest.mark.unit
class TestValidateUpload:
    """Test file presence, type and size checks"""

    def test_valid_file(self):
        upload = FileUpload(filename="a.pdf", mime_type="application/pdf", data=b"x")
        assert validate_upload(upload, settings) is upload

    def test_missing_file(self):
        with pytest.raises(ValidationException, match="File is required"):
            validate_upload(None, settings)

    def test_missing_filename(self):
        with pytest.raises(ValidationException, match="File is required"):
            validate_upload(FileUpload(filename="", mime_type="application/pdf", data=b"x"), settings)

    def test_disallowed_type(self):
        upload = FileUpload(filename="a.exe", mime_type="application/x-msdownload", data=b"x")
        with pytest.raises(ValidationException, match="Invalid file type") as exc_info:
            validate_upload(upload, settings)
        assert exc_info.value.details["content_type"] == "application/x-msdownload"

    def test_size_limit_inclusive(self):
        """Test exactly the maximum is accepted and one byte more is not"""
        limit = settings.MAX_UPLOAD_SIZE_BYTES
        validate_upload(FileUpload("a.pdf", "application/pdf", b"\0" * limit), settings)
        with pytest.raises(ValidationException, match="File too large"):
            validate_upload(FileUpload("a.pdf", "application/pdf", b"\0" * (limit + 1)), settings)


@pytest.mark.unit
class TestNormalizeTags:
    """Test tag normalization"""

    def test_list(self):
        assert normalize_tags([" Finance ", "REPORT", "", "finance"]) == ["finance", "report"]

    def test_comma_string(self):
        assert normalize_tags("q1, Q2 ,,q1") == ["q1", "q2"]

    def test_json_string(self):
        assert normalize_tags('["A", "b", "a"]') == ["a", "b"]

    def test_invalid_json(self):
        with pytest.raises(ValidationException):
            normalize_tags("[not json")

    def test_none(self):
        assert normalize_tags(None) == []

    def test_too_long(self):
        with pytest.raises(ValidationException, match="Tag too long"):
            normalize_tags(["x" * 101])


@pytest.mark.unit
class TestTitleAndDescription:
    """Test title derivation and length checks"""

    @pytest.mark.parametrize("filename,title", [
        ("report.pdf", "report"),
        ("archive.tar.gz", "archive.tar"),
        ("README", "README"),
        (".env", ".env"),
    ])
    def test_derive_title(self, filename, title):
        assert derive_title(filename) == title

    def test_derive_title_truncated(self):
        assert len(derive_title("a" * 300 + ".pdf")) == 255

    def test_validate_title(self):
        assert validate_title("  Quarterly  ") == "Quarterly"
        with pytest.raises(ValidationException, match="Title is required"):
            validate_title("   ")
        with pytest.raises(ValidationException, match="Title too long"):
            validate_title("t" * 256)

    def test_validate_description(self):
        assert validate_description(None) == ""
        assert validate_description("d" * 1000) == "d" * 1000
        with pytest.raises(ValidationException, match="Description too long"):
            validate_description("d" * 1001)
