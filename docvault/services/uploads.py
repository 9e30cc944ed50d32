"""
Upload Validation
Incoming file checks and metadata normalization shared by all upload paths
"""

import json
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from docvault.core.config import Settings
from docvault.core.exceptions import ValidationException

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
TAG_MAX_LENGTH = 100

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


@dataclass
class FileUpload:
    """An uploaded file already read into memory"""

    filename: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_upload(file: Optional[FileUpload], config: Settings) -> FileUpload:
    """
    Check presence, mime type and size before anything is written

    Raises:
        ValidationException: If the file is missing, disallowed or too large
    """
    if file is None or not file.filename:
        raise ValidationException(message="File is required")

    if file.mime_type not in config.ALLOWED_CONTENT_TYPES:
        raise ValidationException(
            message="Invalid file type",
            details={
                "filename": file.filename,
                "content_type": file.mime_type,
                "allowed": config.ALLOWED_CONTENT_TYPES,
            },
        )

    if file.size > config.MAX_UPLOAD_SIZE_BYTES:
        raise ValidationException(
            message="File too large",
            details={
                "filename": file.filename,
                "size": file.size,
                "max_size_bytes": config.MAX_UPLOAD_SIZE_BYTES,
            },
        )

    return file


def normalize_tags(tags: Union[None, str, Iterable[str]]) -> List[str]:
    """
    Lowercase, trim, drop empties and duplicates (first occurrence wins)

    Accepts a list, a comma separated string or a JSON array string.
    """
    if tags is None:
        return []

    if isinstance(tags, str):
        raw = tags.strip()
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                raise ValidationException(message="Invalid tags", details={"tags": tags})
            if not isinstance(parsed, list):
                raise ValidationException(message="Invalid tags", details={"tags": tags})
            values = [str(item) for item in parsed]
        else:
            values = raw.split(",")
    else:
        values = [str(item) for item in tags]

    result: List[str] = []
    for value in values:
        tag = value.strip().lower()
        if not tag or tag in result:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValidationException(
                message="Tag too long",
                details={"tag": tag, "max_length": TAG_MAX_LENGTH},
            )
        result.append(tag)
    return result


def derive_title(filename: str) -> str:
    """Filename without its extension"""
    title = _EXTENSION_RE.sub("", filename) or filename
    return title[:TITLE_MAX_LENGTH]


def validate_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise ValidationException(message="Title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationException(
            message="Title too long",
            details={"length": len(title), "max_length": TITLE_MAX_LENGTH},
        )
    return title


def validate_description(description: Optional[str]) -> str:
    description = (description or "").strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationException(
            message="Description too long",
            details={"length": len(description), "max_length": DESCRIPTION_MAX_LENGTH},
        )
    return description
