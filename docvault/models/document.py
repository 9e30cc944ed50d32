"""
Document Pydantic Models
Request/response schemas for document endpoints
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from docvault.core.permissions import AccessLevel, Capability, PermissionChecker
from docvault.db.models import Document as DocumentSQLModel, DocumentVersion as VersionSQLModel
from docvault.models.common import PageInfo
from docvault.models.permission import PermissionResponse


class DocumentResponse(BaseModel):
    """Document summary schema"""
    id: str
    title: str
    description: str
    original_filename: str
    mime_type: str
    size: int
    tags: List[str]
    current_version_number: int
    owner_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_model(cls, doc: DocumentSQLModel) -> "DocumentResponse":
        """Create DocumentResponse from database model"""
        return cls(
            id=str(doc.id),
            title=doc.title,
            description=doc.description or "",
            original_filename=doc.original_filename,
            mime_type=doc.mime_type,
            size=doc.size_bytes,
            tags=doc.tags,
            current_version_number=doc.current_version_number,
            owner_id=str(doc.owner_id),
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )


class SharedDocumentResponse(DocumentResponse):
    """Document shared with the caller, with the caller's access level"""
    my_access: AccessLevel

    @classmethod
    def from_shared(cls, doc: DocumentSQLModel, access: AccessLevel) -> "SharedDocumentResponse":
        return cls(**DocumentResponse.from_db_model(doc).model_dump(), my_access=access)


class VersionResponse(BaseModel):
    """Version record schema"""
    id: str
    document_id: str
    version_number: int
    original_filename: str
    mime_type: str
    size: int
    uploaded_by: str
    change_log: str
    created_at: datetime

    @classmethod
    def from_db_model(cls, version: VersionSQLModel) -> "VersionResponse":
        return cls(
            id=str(version.id),
            document_id=str(version.document_id),
            version_number=version.version_number,
            original_filename=version.original_filename,
            mime_type=version.mime_type,
            size=version.size_bytes,
            uploaded_by=str(version.uploaded_by),
            change_log=version.change_log,
            created_at=version.created_at,
        )


class DocumentDetail(DocumentResponse):
    """Document with ACL and the caller's derived capability"""
    acl: List[PermissionResponse]
    capability: Capability
    is_owner: bool
    can_edit: bool


class DocumentDetailResponse(BaseModel):
    """Document details with full version history (newest first)"""
    document: DocumentDetail
    versions: List[VersionResponse]

    @classmethod
    def build(
        cls,
        doc: DocumentSQLModel,
        versions: List[VersionSQLModel],
        capability: Capability,
    ) -> "DocumentDetailResponse":
        detail = DocumentDetail(
            **DocumentResponse.from_db_model(doc).model_dump(),
            acl=[PermissionResponse.from_db_model(p) for p in doc.permissions],
            capability=capability,
            is_owner=PermissionChecker.can_manage(capability),
            can_edit=PermissionChecker.can_edit(capability),
        )
        return cls(
            document=detail,
            versions=[VersionResponse.from_db_model(v) for v in versions],
        )


class DocumentListResponse(BaseModel):
    """Paginated owned documents"""
    documents: List[DocumentResponse]
    pagination: PageInfo


class SharedDocumentListResponse(BaseModel):
    """Paginated documents shared with the caller"""
    documents: List[SharedDocumentResponse]
    pagination: PageInfo


class DocumentMetadataUpdate(BaseModel):
    """Partial metadata update; omitted fields are left unchanged"""
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    tags: Optional[List[str]] = None


class DocumentUploadResponse(BaseModel):
    """Single upload response"""
    message: str
    document: DocumentResponse


class UploadFailure(BaseModel):
    """One rejected file in a batch upload"""
    filename: str
    code: str
    message: str


class BatchUploadResponse(BaseModel):
    """Batch upload response"""
    message: str
    documents: List[DocumentResponse]
    failures: List[UploadFailure]


class VersionUploadResponse(BaseModel):
    """New version upload response"""
    message: str
    version: VersionResponse
