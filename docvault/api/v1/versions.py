"""
Versions API Routes
Version lookup and download by version id
"""

import uuid
from fastapi import APIRouter, Depends, Query

from docvault.api.dependencies import get_current_user_id, get_registry, parse_uuid
from docvault.api.v1.documents import stream_download
from docvault.models.document import VersionResponse
from docvault.services.registry import DocumentRegistry

router = APIRouter()


@router.get("/{version_id}", response_model=VersionResponse)
async def get_version(
    version_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Get a version record"""
    version = await registry.get_version(parse_uuid(version_id, "version_id"), user_id)
    return VersionResponse.from_db_model(version)


@router.get("/{version_id}/download")
async def download_version(
    version_id: str,
    preview: bool = Query(False),
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Download the content of a specific version"""
    download = await registry.download_version(parse_uuid(version_id, "version_id"), user_id)
    return stream_download(download, preview)
