"""
Document Registry
The only component that creates and mutates Document and Version records
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.core.config import Settings, settings
from docvault.core.logging import get_logger, log_context
from docvault.core.exceptions import (
    AppException,
    BlobNotFoundException,
    BlobUnavailableException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from docvault.core.permissions import AccessLevel, Capability, PermissionChecker
from docvault.db.base import utcnow
from docvault.db.models import Document, DocumentPermission, DocumentVersion
from docvault.monitoring.metrics import document_downloads_total, document_uploads_total
from docvault.services.uploads import (
    FileUpload,
    derive_title,
    normalize_tags,
    validate_description,
    validate_title,
    validate_upload,
)
from docvault.services.versions import VersionChain
from docvault.storage.base import BlobStore, BlobStream

logger = get_logger(__name__)

INITIAL_CHANGE_LOG = "Initial upload"


@dataclass
class DocumentView:
    """A document, its versions (newest first) and the caller's capability"""

    document: Document
    versions: List[DocumentVersion]
    capability: Capability


@dataclass
class BlobDownload:
    """Open content stream plus what the transport needs to frame it"""

    stream: BlobStream
    mime_type: str
    filename: str
    version_number: int
    length: Optional[int] = None


@dataclass
class BatchFailure:
    filename: str
    code: str
    message: str


@dataclass
class BatchUploadResult:
    documents: List[Document] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)


class DocumentRegistry:
    """
    Document lifecycle operations

    Every operation opens its own session. Capability decisions are delegated
    to PermissionChecker. Blob content is always written before the metadata
    transaction, so a failed upload leaves at most an orphaned blob.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        blob_store: BlobStore,
        versions: Optional[VersionChain] = None,
        config: Settings = settings,
    ):
        self.session_factory = session_factory
        self.blob_store = blob_store
        self.versions = versions or VersionChain()
        self.config = config

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def create_document(
        self,
        owner_id: uuid.UUID,
        file: Optional[FileUpload],
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags=None,
    ) -> Document:
        """
        Create a document together with its version 1

        Args:
            owner_id: Uploading user, becomes the owner
            file: Uploaded file
            title: Defaults to the filename without extension
            description: Optional description
            tags: List or comma separated string of tags

        Returns:
            The created document

        Raises:
            ValidationException: Missing, disallowed or oversized file, bad metadata
            BlobUnavailableException: Blob write failed
        """
        try:
            file = validate_upload(file, self.config)
            title = validate_title(title) if title and title.strip() else derive_title(file.filename)
            description = validate_description(description)
            tag_list = normalize_tags(tags)

            storage_key = await self.blob_store.put(
                file.data, size_hint=file.size, content_type=file.mime_type
            )

            async with self.session_factory() as session:
                async with session.begin():
                    document = Document(
                        title=title,
                        description=description,
                        original_filename=file.filename,
                        mime_type=file.mime_type,
                        size_bytes=file.size,
                        owner_id=owner_id,
                        current_version_number=0,
                    )
                    document.tags = tag_list
                    session.add(document)
                    await session.flush()

                    await self.versions.append_version(
                        session,
                        document.id,
                        file,
                        storage_key,
                        owner_id,
                        INITIAL_CHANGE_LOG,
                    )
                    await session.refresh(document)
        except Exception:
            document_uploads_total.labels(kind="document", status="error").inc()
            raise

        document_uploads_total.labels(kind="document", status="success").inc()
        logger.info(
            f"Document created: {document.id} v{document.current_version_number} "
            f"({file.filename}, {file.size} bytes) by user {owner_id}"
        )
        return document

    async def create_documents_batch(
        self,
        owner_id: uuid.UUID,
        files: Sequence[Optional[FileUpload]],
        tags=None,
    ) -> BatchUploadResult:
        """
        Create one document per file, collecting per-file failures

        The batch size ceiling is checked before any blob is written. The
        batch fails as a whole only when no file succeeds.
        """
        if not files:
            raise ValidationException(message="At least one file is required")

        if len(files) > self.config.MAX_BATCH_FILES:
            raise ValidationException(
                message="Too many files",
                details={"count": len(files), "max_files": self.config.MAX_BATCH_FILES},
            )

        tag_list = normalize_tags(tags)
        result = BatchUploadResult()
        first_error: Optional[Exception] = None

        for file in files:
            filename = getattr(file, "filename", None) or ""
            try:
                document = await self.create_document(owner_id, file, tags=tag_list)
            except AppException as e:
                first_error = first_error or e
                result.failures.append(BatchFailure(filename=filename, code=e.code, message=e.message))
                logger.warning(f"Batch upload rejected {filename!r}: {e.message}")
            except SQLAlchemyError as e:
                first_error = first_error or e
                result.failures.append(
                    BatchFailure(filename=filename, code="internal_error", message="Failed to save document")
                )
                logger.error(f"Batch upload failed to save {filename!r}: {e}")
            else:
                result.documents.append(document)

        if not result.documents:
            if isinstance(first_error, AppException):
                first_error.details["failures"] = [
                    {"filename": f.filename, "code": f.code, "message": f.message}
                    for f in result.failures
                ]
            raise first_error

        logger.info(
            f"Batch upload by user {owner_id}: {len(result.documents)} created, "
            f"{len(result.failures)} failed"
        )
        return result

    async def upload_version(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        file: Optional[FileUpload],
        change_log: Optional[str] = None,
    ) -> DocumentVersion:
        """
        Append a new version to an active document

        Raises:
            NotFoundException: Document absent or soft-deleted
            ForbiddenException: Caller cannot edit
            ValidationException: Missing, disallowed or oversized file
            ConflictException: Version number taken concurrently
        """
        with log_context(document_id=document_id, user_id=user_id):
            try:
                async with self.session_factory() as session:
                    document = await self._get_active_document(session, document_id)
                    PermissionChecker.require_edit(document, user_id)

                file = validate_upload(file, self.config)
                storage_key = await self.blob_store.put(
                    file.data, size_hint=file.size, content_type=file.mime_type
                )

                # Access may have been revoked while the blob was being written
                async with self.session_factory() as session:
                    async with session.begin():
                        document = await self._get_active_document(session, document_id)
                        PermissionChecker.require_edit(document, user_id)
                        version = await self.versions.append_version(
                            session,
                            document_id,
                            file,
                            storage_key,
                            user_id,
                            (change_log or "").strip() or None,
                        )
            except Exception:
                document_uploads_total.labels(kind="version", status="error").inc()
                raise

            document_uploads_total.labels(kind="version", status="success").inc()
            logger.info(f"Document {document_id} v{version.version_number} uploaded by user {user_id}")
            return version

    # ------------------------------------------------------------------
    # Metadata and lifecycle
    # ------------------------------------------------------------------

    async def update_metadata(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags=None,
    ) -> Document:
        """Partial update; None leaves a field unchanged"""
        with log_context(document_id=document_id, user_id=user_id):
            async with self.session_factory() as session:
                async with session.begin():
                    document = await self._get_active_document(session, document_id)
                    PermissionChecker.require_edit(document, user_id)

                    changed = []
                    if title is not None:
                        title = validate_title(title)
                        if title != document.title:
                            document.title = title
                            changed.append("title")

                    if description is not None:
                        description = validate_description(description)
                        if description != document.description:
                            document.description = description
                            changed.append("description")

                    if tags is not None:
                        tag_list = normalize_tags(tags)
                        if tag_list != document.tags:
                            document.tags = tag_list
                            changed.append("tags")

                    if changed:
                        document.updated_at = utcnow()

            if changed:
                logger.info(f"Document {document_id} metadata updated ({', '.join(changed)}) by user {user_id}")
            return document

    async def soft_delete(self, document_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Hide the document from every read path; storage and versions are kept"""
        with log_context(document_id=document_id, user_id=user_id):
            async with self.session_factory() as session:
                async with session.begin():
                    document = await self._get_active_document(session, document_id)
                    PermissionChecker.require_manage(document, user_id)

                    document.is_deleted = True
                    document.deleted_at = utcnow()

            logger.info(f"Document {document_id} soft-deleted by user {user_id}")

    # ------------------------------------------------------------------
    # Access control list
    # ------------------------------------------------------------------

    async def set_permission(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        target_user_id: uuid.UUID,
        level,
    ) -> List[DocumentPermission]:
        """
        Grant or change a user's access level (upsert)

        Returns:
            The document's ACL after the change

        Raises:
            ForbiddenException: Caller is not the owner
            ValidationException: Target is the owner, or level is invalid
        """
        with log_context(document_id=document_id, user_id=user_id):
            async with self.session_factory() as session:
                async with session.begin():
                    document = await self._get_active_document(session, document_id)
                    PermissionChecker.require_manage(document, user_id)

                    if target_user_id == document.owner_id:
                        raise ValidationException(
                            message="The owner cannot be added to the access list",
                            details={"user_id": str(target_user_id)},
                        )

                    access = AccessLevel.parse(level)
                    entry = PermissionChecker.find_entry(document.permissions, target_user_id)
                    if entry is None:
                        document.permissions.append(
                            DocumentPermission(
                                user_id=target_user_id,
                                access_level=access.value,
                                granted_by=user_id,
                            )
                        )
                    else:
                        entry.access_level = access.value
                        entry.granted_by = user_id

                    try:
                        await session.flush()
                    except IntegrityError as e:
                        raise ConflictException(
                            message="Permission was changed concurrently",
                            details={"user_id": str(target_user_id)},
                        ) from e

                    acl = list(document.permissions)

            logger.info(f"Document {document_id}: user {target_user_id} granted {access.value} by {user_id}")
            return acl

    async def remove_permission(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        target_user_id: uuid.UUID,
    ) -> List[DocumentPermission]:
        """Revoke a user's ACL entry"""
        with log_context(document_id=document_id, user_id=user_id):
            async with self.session_factory() as session:
                async with session.begin():
                    document = await self._get_active_document(session, document_id)
                    PermissionChecker.require_manage(document, user_id)

                    entry = PermissionChecker.find_entry(document.permissions, target_user_id)
                    if entry is None:
                        raise NotFoundException("Permission", details={"user_id": str(target_user_id)})

                    document.permissions.remove(entry)
                    await session.flush()
                    acl = list(document.permissions)

            logger.info(f"Document {document_id}: access for user {target_user_id} removed by {user_id}")
            return acl

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_document(self, document_id: uuid.UUID, user_id: uuid.UUID) -> DocumentView:
        """Document with its full version list and the caller's capability"""
        async with self.session_factory() as session:
            document = await self._get_active_document(session, document_id)
            capability = PermissionChecker.require_view(document, user_id)
            versions = await self.versions.list_versions(session, document.id)

        return DocumentView(document=document, versions=versions, capability=capability)

    async def download(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        version_number: Optional[int] = None,
    ) -> BlobDownload:
        """Open the content of a version (the current one when omitted)"""
        async with self.session_factory() as session:
            document = await self._get_active_document(session, document_id)
            PermissionChecker.require_view(document, user_id)
            version = await self.versions.resolve_version(session, document.id, version_number)

        return await self._open_version(version, user_id)

    async def get_version(self, version_id: uuid.UUID, user_id: uuid.UUID) -> DocumentVersion:
        """Look up a version by id, checking view access on its document"""
        async with self.session_factory() as session:
            version = await self.versions.get_version(session, version_id)
            document = await self._get_active_document(session, version.document_id)
            PermissionChecker.require_view(document, user_id)

        return version

    async def download_version(self, version_id: uuid.UUID, user_id: uuid.UUID) -> BlobDownload:
        version = await self.get_version(version_id, user_id)
        return await self._open_version(version, user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_active_document(self, session: AsyncSession, document_id: uuid.UUID) -> Document:
        result = await session.execute(
            select(Document)
            .where(Document.id == document_id, Document.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        document = result.scalar_one_or_none()
        if document is None:
            raise NotFoundException("Document", details={"document_id": str(document_id)})
        return document

    async def _open_version(self, version: DocumentVersion, user_id: uuid.UUID) -> BlobDownload:
        with log_context(document_id=version.document_id, user_id=user_id):
            try:
                stream = await self._get_blob(version.storage_key)
            except BlobNotFoundException as e:
                document_downloads_total.labels(status="error").inc()
                logger.error(
                    f"Blob {e.storage_key} missing from {e.backend or 'blob store'} for "
                    f"document {version.document_id} v{version.version_number}"
                )
                raise
            except AppException:
                document_downloads_total.labels(status="error").inc()
                raise

            document_downloads_total.labels(status="success").inc()
            logger.info(
                f"Document {version.document_id} v{version.version_number} downloaded by user {user_id}"
            )
            return BlobDownload(
                stream=stream,
                mime_type=version.mime_type,
                filename=version.original_filename,
                version_number=version.version_number,
                length=stream.length,
            )

    async def _get_blob(self, storage_key: str) -> BlobStream:
        # Reads are idempotent: one retry on a backend failure
        try:
            return await self.blob_store.get(storage_key)
        except BlobUnavailableException as e:
            logger.warning(f"Blob read failed for {storage_key}, retrying once: {e.message}")
            return await self.blob_store.get(storage_key)
