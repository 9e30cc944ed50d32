"""
Documents API Routes
Upload, listing, metadata, versions, download and sharing
"""

import uuid
from typing import AsyncIterator, List, Optional
from urllib.parse import quote
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from docvault.core.config import settings
from docvault.core.logging import get_logger
from docvault.api.dependencies import get_current_user_id, get_listing, get_registry, parse_uuid
from docvault.models.common import MessageResponse
from docvault.models.dashboard import DashboardSummary
from docvault.models.document import (
    BatchUploadResponse,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentMetadataUpdate,
    DocumentResponse,
    DocumentUploadResponse,
    SharedDocumentListResponse,
    SharedDocumentResponse,
    UploadFailure,
    VersionResponse,
    VersionUploadResponse,
)
from docvault.models.permission import AclResponse, PermissionResponse, SetPermissionRequest
from docvault.services.listing import ListingService
from docvault.services.registry import BlobDownload, DocumentRegistry
from docvault.services.uploads import FileUpload
from docvault.storage.base import BlobStream

logger = get_logger(__name__)
router = APIRouter()


async def read_upload(file: Optional[UploadFile]) -> Optional[FileUpload]:
    """Read a multipart file, bounded one byte past the size limit"""
    if file is None:
        return None
    data = await file.read(settings.MAX_UPLOAD_SIZE_BYTES + 1)
    await file.close()
    return FileUpload(
        filename=file.filename or "",
        mime_type=file.content_type or "application/octet-stream",
        data=data,
    )


async def _iter_blob(stream: BlobStream) -> AsyncIterator[bytes]:
    # Closing in finally also covers client disconnects (generator cancelled)
    try:
        async for chunk in stream:
            yield chunk
    finally:
        await stream.aclose()


def stream_download(download: BlobDownload, preview: bool = False) -> StreamingResponse:
    """Frame an open blob stream as a file response"""
    disposition = "inline" if preview else "attachment"
    fallback = download.filename.encode("ascii", "ignore").decode().replace('"', "") or "download"
    headers = {
        "Content-Disposition": (
            f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(download.filename)}"
        ),
    }
    if download.length is not None:
        headers["Content-Length"] = str(download.length)

    return StreamingResponse(
        _iter_blob(download.stream),
        media_type=download.mime_type,
        headers=headers,
    )


@router.post("", response_model=DocumentUploadResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """
    Upload a single document (becomes version 1)

    - **file**: Document file (allowed types only, max 10MB)
    - **title**: Defaults to the filename without extension
    - **tags**: Comma separated or JSON array
    """
    document = await registry.create_document(
        user_id,
        await read_upload(file),
        title=title,
        description=description,
        tags=tags,
    )
    return DocumentUploadResponse(
        message="Document uploaded successfully",
        document=DocumentResponse.from_db_model(document),
    )


@router.post("/upload", response_model=BatchUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_documents(
    files: List[UploadFile] = File(...),
    tags: Optional[str] = Form(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Upload several documents at once; per-file failures are reported"""
    uploads = [await read_upload(file) for file in files]
    result = await registry.create_documents_batch(user_id, uploads, tags=tags)

    return BatchUploadResponse(
        message=f"{len(result.documents)} document(s) uploaded successfully",
        documents=[DocumentResponse.from_db_model(doc) for doc in result.documents],
        failures=[
            UploadFailure(filename=f.filename, code=f.code, message=f.message)
            for f in result.failures
        ],
    )


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    q: Optional[str] = Query(None, description="Search title, filename and description"),
    tags: Optional[str] = Query(None, description="Comma separated tags (match any)"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = Query("desc"),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing),
):
    """List the caller's documents"""
    documents, pagination = await listing.list_owned(
        user_id,
        query=q,
        tags=tags,
        sort_by=sort_by,
        order=order,
        page=page,
        page_size=limit,
    )
    return DocumentListResponse(
        documents=[DocumentResponse.from_db_model(doc) for doc in documents],
        pagination=pagination,
    )


@router.get("/shared", response_model=SharedDocumentListResponse)
async def list_shared_documents(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing),
):
    """List documents other users shared with the caller"""
    rows, pagination = await listing.list_shared(user_id, page=page, page_size=limit)
    return SharedDocumentListResponse(
        documents=[SharedDocumentResponse.from_shared(doc, access) for doc, access in rows],
        pagination=pagination,
    )


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(
    user_id: uuid.UUID = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing),
):
    """Size, type and tag statistics over the caller's documents"""
    return await listing.dashboard_summary(user_id)


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Get document details with version history"""
    view = await registry.get_document(parse_uuid(document_id, "document_id"), user_id)
    return DocumentDetailResponse.build(view.document, view.versions, view.capability)


@router.get("/{document_id}/download")
async def download_document(
    document_id: str,
    version: Optional[int] = Query(None, ge=1, description="Version number (default: current)"),
    preview: bool = Query(False, description="Inline disposition for in-browser preview"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Download the current or a specific version"""
    download = await registry.download(parse_uuid(document_id, "document_id"), user_id, version)
    return stream_download(download, preview)


@router.post(
    "/{document_id}/versions",
    response_model=VersionUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_version(
    document_id: str,
    file: Optional[UploadFile] = File(None),
    change_log: Optional[str] = Form(None, alias="changeLog"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Upload a new version (editor or owner)"""
    version = await registry.upload_version(
        parse_uuid(document_id, "document_id"),
        user_id,
        await read_upload(file),
        change_log,
    )
    return VersionUploadResponse(
        message="New version uploaded successfully",
        version=VersionResponse.from_db_model(version),
    )


@router.put("/{document_id}", response_model=DocumentUploadResponse)
async def update_document(
    document_id: str,
    update: DocumentMetadataUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Update title, description and/or tags (editor or owner)"""
    document = await registry.update_metadata(
        parse_uuid(document_id, "document_id"),
        user_id,
        title=update.title,
        description=update.description,
        tags=update.tags,
    )
    return DocumentUploadResponse(
        message="Document updated successfully",
        document=DocumentResponse.from_db_model(document),
    )


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete_document(
    document_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Soft-delete a document (owner only)"""
    await registry.soft_delete(parse_uuid(document_id, "document_id"), user_id)
    return MessageResponse(message="Document deleted successfully")


@router.post("/{document_id}/permissions", response_model=AclResponse)
async def set_permission(
    document_id: str,
    request: SetPermissionRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Grant or change a user's access (owner only)"""
    acl = await registry.set_permission(
        parse_uuid(document_id, "document_id"),
        user_id,
        request.user_id,
        request.access,
    )
    return AclResponse(
        message="Permission updated successfully",
        acl=[PermissionResponse.from_db_model(entry) for entry in acl],
    )


@router.delete("/{document_id}/permissions/{target_user_id}", response_model=AclResponse)
async def remove_permission(
    document_id: str,
    target_user_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: DocumentRegistry = Depends(get_registry),
):
    """Revoke a user's access (owner only)"""
    acl = await registry.remove_permission(
        parse_uuid(document_id, "document_id"),
        user_id,
        parse_uuid(target_user_id, "user_id"),
    )
    return AclResponse(
        message="Permission removed successfully",
        acl=[PermissionResponse.from_db_model(entry) for entry in acl],
    )
