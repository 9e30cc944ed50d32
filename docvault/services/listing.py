"""
Listing Service
Owned/shared document queries and the owner dashboard aggregates
"""

import uuid
from typing import List, Optional, Tuple

from sqlalchemy import and_, asc, case, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.core.config import Settings, settings
from docvault.core.logging import get_logger
from docvault.core.permissions import AccessLevel, PermissionChecker
from docvault.db.models import Document, DocumentPermission, DocumentTag
from docvault.models.common import PageInfo
from docvault.models.dashboard import DashboardSummary, MimeTypeGroup, SizeBucket, TagCount
from docvault.models.document import DocumentResponse
from docvault.services.uploads import normalize_tags

logger = get_logger(__name__)

SORT_COLUMNS = {
    "size": Document.size_bytes,
    "createdAt": Document.created_at,
    "title": Document.title,
    "updatedAt": Document.updated_at,
}

KB = 1024
MB = 1024 * 1024

# (label, lower bound inclusive, upper bound exclusive)
SIZE_BUCKETS: List[Tuple[str, int, Optional[int]]] = [
    ("0-100KB", 0, 100 * KB),
    ("100KB-1MB", 100 * KB, MB),
    ("1MB-5MB", MB, 5 * MB),
    ("5MB-10MB", 5 * MB, 10 * MB),
    ("10MB+", 10 * MB, None),
]

RECENT_LIMIT = 5
TOP_TAGS_LIMIT = 10


class ListingService:
    """Read-only queries scoped to the calling user"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Settings = settings,
    ):
        self.session_factory = session_factory
        self.config = config

    def clamp_page(self, page: Optional[int], page_size: Optional[int]) -> Tuple[int, int]:
        """1-indexed page and a page size capped at MAX_PAGE_SIZE"""
        page = max(page or 1, 1)
        page_size = page_size or self.config.DEFAULT_PAGE_SIZE
        page_size = min(max(page_size, 1), self.config.MAX_PAGE_SIZE)
        return page, page_size

    async def list_owned(
        self,
        owner_id: uuid.UUID,
        query: Optional[str] = None,
        tags=None,
        sort_by: str = "createdAt",
        order: str = "desc",
        page: Optional[int] = 1,
        page_size: Optional[int] = None,
    ) -> Tuple[List[Document], PageInfo]:
        """
        Owned, non-deleted documents

        Args:
            query: Case-insensitive substring of title, filename or description
            tags: Documents carrying any of these tags
            sort_by: size, createdAt, title or updatedAt (unknown values use createdAt)
            order: asc or desc
        """
        page, page_size = self.clamp_page(page, page_size)

        conditions = [Document.owner_id == owner_id, Document.is_deleted.is_(False)]

        term = (query or "").strip().lower()
        if term:
            conditions.append(
                or_(
                    *(
                        func.lower(column).contains(term, autoescape=True)
                        for column in (Document.title, Document.original_filename, Document.description)
                    )
                )
            )

        tag_list = normalize_tags(tags)
        if tag_list:
            conditions.append(
                Document.id.in_(select(DocumentTag.document_id).where(DocumentTag.tag.in_(tag_list)))
            )

        sort_column = SORT_COLUMNS.get(sort_by, Document.created_at)
        direction = asc if order == "asc" else desc

        async with self.session_factory() as session:
            total = await session.scalar(select(func.count(Document.id)).where(*conditions))
            result = await session.execute(
                select(Document)
                .where(*conditions)
                .order_by(direction(sort_column), direction(Document.id))
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            documents = list(result.scalars().all())

        logger.debug(f"Owned listing for user {owner_id}: {total} match, page {page}")

        return documents, PageInfo.build(page, page_size, total or 0)

    async def list_shared(
        self,
        user_id: uuid.UUID,
        page: Optional[int] = 1,
        page_size: Optional[int] = None,
    ) -> Tuple[List[Tuple[Document, AccessLevel]], PageInfo]:
        """Documents where the caller holds an ACL entry, most recently updated first"""
        page, page_size = self.clamp_page(page, page_size)

        # Candidate rows only; the caller's access is decided by PermissionChecker
        conditions = [
            DocumentPermission.user_id == user_id,
            Document.is_deleted.is_(False),
        ]

        async with self.session_factory() as session:
            total = await session.scalar(
                select(func.count(Document.id))
                .select_from(Document)
                .join(DocumentPermission, DocumentPermission.document_id == Document.id)
                .where(*conditions)
            )
            result = await session.execute(
                select(Document)
                .join(DocumentPermission, DocumentPermission.document_id == Document.id)
                .where(*conditions)
                .order_by(Document.updated_at.desc(), Document.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            rows = []
            for document in result.scalars().all():
                access = PermissionChecker.shared_access(document, user_id)
                if access is not None:
                    rows.append((document, access))

        return rows, PageInfo.build(page, page_size, total or 0)

    async def dashboard_summary(self, owner_id: uuid.UUID) -> DashboardSummary:
        """Aggregates over the caller's owned, non-deleted documents"""
        owned = and_(Document.owner_id == owner_id, Document.is_deleted.is_(False))

        async with self.session_factory() as session:
            recent_result = await session.execute(
                select(Document)
                .where(owned)
                .order_by(Document.created_at.desc(), Document.id.desc())
                .limit(RECENT_LIMIT)
            )
            recent = list(recent_result.scalars().all())

            bucket_columns = []
            for _, lower, upper in SIZE_BUCKETS:
                condition = Document.size_bytes >= lower
                if upper is not None:
                    condition = and_(condition, Document.size_bytes < upper)
                bucket_columns.append(func.count(case((condition, 1))))
                bucket_columns.append(func.coalesce(func.sum(case((condition, Document.size_bytes), else_=0)), 0))

            stats = (
                await session.execute(
                    select(
                        func.count(Document.id),
                        func.coalesce(func.sum(Document.size_bytes), 0),
                        *bucket_columns,
                    ).where(owned)
                )
            ).one()

            mime_count = func.count(Document.id)
            mime_result = await session.execute(
                select(Document.mime_type, mime_count, func.coalesce(func.sum(Document.size_bytes), 0))
                .where(owned)
                .group_by(Document.mime_type)
                .order_by(mime_count.desc(), Document.mime_type.asc())
            )
            mime_rows = mime_result.all()

            tag_count = func.count(DocumentTag.document_id)
            tag_result = await session.execute(
                select(DocumentTag.tag, tag_count)
                .join(Document, Document.id == DocumentTag.document_id)
                .where(owned)
                .group_by(DocumentTag.tag)
                .order_by(tag_count.desc(), DocumentTag.tag.asc())
                .limit(TOP_TAGS_LIMIT)
            )
            tag_rows = tag_result.all()

        total_count = int(stats[0])
        total_size = int(stats[1])
        size_buckets = []
        for index, (label, lower, upper) in enumerate(SIZE_BUCKETS):
            size_buckets.append(
                SizeBucket(
                    label=label,
                    min_bytes=lower,
                    max_bytes=upper,
                    count=int(stats[2 + index * 2]),
                    total_size=int(stats[3 + index * 2]),
                )
            )

        return DashboardSummary(
            recent=[DocumentResponse.from_db_model(doc) for doc in recent],
            total_count=total_count,
            total_size=total_size,
            avg_size=(total_size / total_count) if total_count else 0.0,
            size_buckets=size_buckets,
            mime_type_groups=[
                MimeTypeGroup(mime_type=mime, count=int(count), total_size=int(size))
                for mime, count, size in mime_rows
            ],
            top_tags=[TagCount(tag=tag, count=int(count)) for tag, count in tag_rows],
        )
