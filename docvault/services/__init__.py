"""
Document Services
Registry, version chain and listing over the metadata and blob stores
"""

from docvault.services.listing import ListingService
from docvault.services.registry import (
    BatchFailure,
    BatchUploadResult,
    BlobDownload,
    DocumentRegistry,
    DocumentView,
)
from docvault.services.uploads import FileUpload
from docvault.services.versions import VersionChain

__all__ = [
    "BatchFailure",
    "BatchUploadResult",
    "BlobDownload",
    "DocumentRegistry",
    "DocumentView",
    "FileUpload",
    "ListingService",
    "VersionChain",
]
