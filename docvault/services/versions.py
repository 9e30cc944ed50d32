"""
Version Chain
Monotonic version numbering and version lookups for a document
"""

import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.logging import get_logger
from docvault.core.exceptions import ConflictException, NotFoundException
from docvault.db.base import utcnow
from docvault.db.models import Document, DocumentVersion
from docvault.services.uploads import FileUpload

logger = get_logger(__name__)


class VersionChain:
    """
    Append and resolve versions of a document

    Numbering is serialized by a single atomic increment of
    documents.current_version_number; the new number is read back with
    RETURNING and the version row is inserted in the same transaction. The
    row lock taken by the UPDATE orders concurrent appends, and the
    (document_id, version_number) unique constraint backs it up.

    All methods run inside the caller's session; the caller owns the commit.
    """

    async def append_version(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
        file: FileUpload,
        storage_key: str,
        uploader_id: uuid.UUID,
        change_log: Optional[str] = None,
    ) -> DocumentVersion:
        """
        Assign the next version number and insert the version record

        Also rewrites the document's cached filename/mime type/size so they
        mirror the new version.

        Raises:
            NotFoundException: If the document is absent or soft-deleted
            ConflictException: If the version number was taken concurrently
        """
        stmt = (
            update(Document)
            .where(Document.id == document_id, Document.is_deleted.is_(False))
            .values(
                current_version_number=Document.current_version_number + 1,
                original_filename=file.filename,
                mime_type=file.mime_type,
                size_bytes=file.size,
                updated_at=utcnow(),
            )
            .returning(Document.current_version_number)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        version_number = result.scalar_one_or_none()

        if version_number is None:
            raise NotFoundException("Document", details={"document_id": str(document_id)})

        version = DocumentVersion(
            document_id=document_id,
            version_number=version_number,
            storage_key=storage_key,
            original_filename=file.filename,
            mime_type=file.mime_type,
            size_bytes=file.size,
            uploaded_by=uploader_id,
            change_log=change_log or f"Version {version_number}",
        )
        session.add(version)

        try:
            await session.flush()
        except IntegrityError as e:
            logger.warning(f"Version {version_number} of document {document_id} already exists: {e}")
            raise ConflictException(
                message="Version number conflict, retry the upload",
                details={"document_id": str(document_id), "version_number": version_number},
            ) from e

        return version

    async def list_versions(self, session: AsyncSession, document_id: uuid.UUID) -> List[DocumentVersion]:
        """All versions of a document, newest first"""
        result = await session.execute(
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
            .order_by(DocumentVersion.version_number.desc())
        )
        return list(result.scalars().all())

    async def resolve_version(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
        version_number: Optional[int] = None,
    ) -> DocumentVersion:
        """
        Look up a specific version, or the latest when version_number is None

        Raises:
            NotFoundException: If no such version exists
        """
        query = select(DocumentVersion).where(DocumentVersion.document_id == document_id)
        if version_number is None:
            query = query.order_by(DocumentVersion.version_number.desc()).limit(1)
        else:
            query = query.where(DocumentVersion.version_number == version_number)

        version = (await session.execute(query)).scalar_one_or_none()
        if version is None:
            raise NotFoundException(
                "Version",
                details={"document_id": str(document_id), "version": version_number or "latest"},
            )
        return version

    async def get_version(self, session: AsyncSession, version_id: uuid.UUID) -> DocumentVersion:
        """Look up a version by its own id"""
        version = await session.get(DocumentVersion, version_id)
        if version is None:
            raise NotFoundException("Version", details={"version_id": str(version_id)})
        return version
