"""
Dashboard Pydantic Models
"""

from typing import List, Optional
from pydantic import BaseModel

from docvault.models.document import DocumentResponse


class SizeBucket(BaseModel):
    label: str
    min_bytes: int
    max_bytes: Optional[int]
    count: int
    total_size: int


class MimeTypeGroup(BaseModel):
    mime_type: str
    count: int
    total_size: int


class TagCount(BaseModel):
    tag: str
    count: int


class DashboardSummary(BaseModel):
    """Aggregates over the caller's owned, non-deleted documents"""
    recent: List[DocumentResponse]
    total_count: int
    total_size: int
    avg_size: float
    size_buckets: List[SizeBucket]
    mime_type_groups: List[MimeTypeGroup]
    top_tags: List[TagCount]
