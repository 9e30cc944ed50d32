"""
Unit Tests for the Listing Service
Tests for docvault/services/listing.py
"""

import uuid

import pytest

from docvault.core.permissions import AccessLevel

KB = 1024
MB = 1024 * 1024


async def seed(registry, owner_id, make_upload, specs):
    """Create documents from (filename, size, tags, description) tuples"""
    documents = []
    for filename, size, tags, description in specs:
        documents.append(
            await registry.create_document(
                owner_id,
                make_upload(filename, "application/pdf", b"\0" * size),
                description=description,
                tags=tags,
            )
        )
    return documents


@pytest.mark.unit
class TestListOwned:
    """Test search, filter, sort and pagination"""

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, registry, listing, owner_id, other_user_id, make_upload):
        await seed(registry, owner_id, make_upload, [("mine.pdf", 10, None, "")])
        await seed(registry, other_user_id, make_upload, [("theirs.pdf", 10, None, "")])

        documents, page = await listing.list_owned(owner_id)
        assert [d.title for d in documents] == ["mine"]
        assert page.total == 1
        assert page.pages == 1

    @pytest.mark.asyncio
    async def test_query_matches_any_field(self, registry, listing, owner_id, make_upload):
        await seed(registry, owner_id, make_upload, [
            ("Budget.pdf", 10, None, ""),
            ("notes.pdf", 10, None, "about the BUDGET"),
            ("other.pdf", 10, None, ""),
        ])
        documents, _ = await listing.list_owned(owner_id, query="budget", sort_by="title", order="asc")
        assert [d.title for d in documents] == ["Budget", "notes"]

    @pytest.mark.asyncio
    async def test_query_folds_non_ascii(self, registry, listing, owner_id, make_upload):
        """Test case-insensitive search beyond ASCII"""
        await seed(registry, owner_id, make_upload, [
            ("Été report.pdf", 10, None, ""),
            ("notes.pdf", 10, None, "ÜBERSICHT"),
            ("other.pdf", 10, None, ""),
        ])
        documents, page = await listing.list_owned(owner_id, query="été")
        assert [d.title for d in documents] == ["Été report"]
        assert page.total == 1

        documents, _ = await listing.list_owned(owner_id, query="ÉTÉ REP")
        assert [d.title for d in documents] == ["Été report"]

        documents, _ = await listing.list_owned(owner_id, query="übersicht")
        assert [d.title for d in documents] == ["notes"]

    @pytest.mark.asyncio
    async def test_query_wildcards_are_literal(self, registry, listing, owner_id, make_upload):
        await seed(registry, owner_id, make_upload, [("50%_off.pdf", 10, None, ""), ("plain.pdf", 10, None, "")])
        documents, _ = await listing.list_owned(owner_id, query="%_")
        assert [d.title for d in documents] == ["50%_off"]

    @pytest.mark.asyncio
    async def test_tags_match_any(self, registry, listing, owner_id, make_upload):
        await seed(registry, owner_id, make_upload, [
            ("a.pdf", 10, "finance", ""),
            ("b.pdf", 10, "legal", ""),
            ("c.pdf", 10, "finance,legal", ""),
            ("d.pdf", 10, "misc", ""),
        ])
        documents, page = await listing.list_owned(owner_id, tags="Legal, finance", sort_by="title", order="asc")
        assert [d.title for d in documents] == ["a", "b", "c"]
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_sort_by_size(self, registry, listing, owner_id, make_upload):
        await seed(registry, owner_id, make_upload, [
            ("m.pdf", 200, None, ""),
            ("s.pdf", 100, None, ""),
            ("l.pdf", 300, None, ""),
        ])
        documents, _ = await listing.list_owned(owner_id, sort_by="size", order="asc")
        assert [d.size_bytes for d in documents] == [100, 200, 300]
        documents, _ = await listing.list_owned(owner_id, sort_by="size", order="desc")
        assert [d.size_bytes for d in documents] == [300, 200, 100]

    @pytest.mark.asyncio
    async def test_unknown_sort_falls_back(self, registry, listing, owner_id, make_upload):
        await seed(registry, owner_id, make_upload, [("first.pdf", 1, None, ""), ("second.pdf", 1, None, "")])
        fallback, _ = await listing.list_owned(owner_id, sort_by="bogus")
        created, _ = await listing.list_owned(owner_id, sort_by="createdAt")
        assert [d.id for d in fallback] == [d.id for d in created]

    @pytest.mark.asyncio
    async def test_pagination(self, registry, listing, owner_id, make_upload):
        await seed(registry, owner_id, make_upload, [(f"doc{i}.pdf", 1, None, "") for i in range(5)])

        documents, page = await listing.list_owned(owner_id, sort_by="title", order="asc", page=2, page_size=2)
        assert [d.title for d in documents] == ["doc2", "doc3"]
        assert (page.page, page.limit, page.total, page.pages) == (2, 2, 5, 3)

    def test_clamp_page(self, listing):
        assert listing.clamp_page(0, 500) == (1, 50)
        assert listing.clamp_page(-3, None) == (1, 20)
        assert listing.clamp_page(4, -1) == (4, 1)

    @pytest.mark.asyncio
    async def test_deleted_excluded(self, registry, listing, owner_id, make_upload):
        doc, = await seed(registry, owner_id, make_upload, [("gone.pdf", 1, None, "")])
        await registry.soft_delete(doc.id, owner_id)
        documents, page = await listing.list_owned(owner_id)
        assert documents == []
        assert page.total == 0


@pytest.mark.unit
class TestListShared:
    """Test documents shared with the caller"""

    @pytest.mark.asyncio
    async def test_shared_with_access_level(self, registry, listing, owner_id, other_user_id, make_upload):
        a, b, c = await seed(registry, owner_id, make_upload, [
            ("a.pdf", 1, None, ""),
            ("b.pdf", 1, None, ""),
            ("c.pdf", 1, None, ""),
        ])
        await registry.set_permission(a.id, owner_id, other_user_id, "viewer")
        await registry.set_permission(b.id, owner_id, other_user_id, "editor")
        await registry.update_metadata(a.id, owner_id, title="a-renamed")

        rows, page = await listing.list_shared(other_user_id)
        assert [(doc.title, access) for doc, access in rows] == [
            ("a-renamed", AccessLevel.VIEWER),
            ("b", AccessLevel.EDITOR),
        ]
        assert page.total == 2

        own_rows, _ = await listing.list_shared(owner_id)
        assert own_rows == []

    @pytest.mark.asyncio
    async def test_access_follows_acl_changes(self, registry, listing, owner_id, other_user_id, make_upload):
        """Test the reported access level tracks the current ACL entry"""
        doc, = await seed(registry, owner_id, make_upload, [("a.pdf", 1, None, "")])
        await registry.set_permission(doc.id, owner_id, other_user_id, "viewer")
        await registry.set_permission(doc.id, owner_id, other_user_id, "editor")

        rows, _ = await listing.list_shared(other_user_id)
        assert [access for _, access in rows] == [AccessLevel.EDITOR]

        await registry.remove_permission(doc.id, owner_id, other_user_id)
        rows, page = await listing.list_shared(other_user_id)
        assert rows == []
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_deleted_excluded(self, registry, listing, owner_id, other_user_id, make_upload):
        doc, = await seed(registry, owner_id, make_upload, [("a.pdf", 1, None, "")])
        await registry.set_permission(doc.id, owner_id, other_user_id, "viewer")
        await registry.soft_delete(doc.id, owner_id)

        rows, page = await listing.list_shared(other_user_id)
        assert rows == []
        assert page.total == 0


@pytest.mark.unit
class TestDashboard:
    """Test dashboard aggregates"""

    @pytest.mark.asyncio
    async def test_empty(self, listing):
        summary = await listing.dashboard_summary(uuid.uuid4())
        assert summary.total_count == 0
        assert summary.avg_size == 0.0
        assert [b.count for b in summary.size_buckets] == [0, 0, 0, 0, 0]
        assert summary.recent == []
        assert summary.top_tags == []

    @pytest.mark.asyncio
    async def test_aggregates(self, registry, listing, owner_id, other_user_id, make_upload):
        await seed(registry, owner_id, make_upload, [
            ("tiny.pdf", 10 * KB, "a,b", ""),
            ("edge.pdf", 100 * KB, "b", ""),
            ("mid.pdf", 2 * MB, "b,c", ""),
            ("big.pdf", 10 * MB, "c", ""),
        ])
        text = await registry.create_document(owner_id, make_upload("n.txt", "text/plain", b"hi"), tags="a")
        hidden, = await seed(registry, owner_id, make_upload, [("hidden.pdf", 1, "zzz", "")])
        await registry.soft_delete(hidden.id, owner_id)
        await seed(registry, other_user_id, make_upload, [("theirs.pdf", 1, "a", "")])

        summary = await listing.dashboard_summary(owner_id)

        total = 10 * KB + 100 * KB + 2 * MB + 10 * MB + 2
        assert summary.total_count == 5
        assert summary.total_size == total
        assert summary.avg_size == pytest.approx(total / 5)

        buckets = {b.label: (b.count, b.total_size) for b in summary.size_buckets}
        assert buckets == {
            "0-100KB": (2, 10 * KB + 2),
            "100KB-1MB": (1, 100 * KB),
            "1MB-5MB": (1, 2 * MB),
            "5MB-10MB": (0, 0),
            "10MB+": (1, 10 * MB),
        }

        assert [(g.mime_type, g.count) for g in summary.mime_type_groups] == [
            ("application/pdf", 4),
            ("text/plain", 1),
        ]
        assert [(t.tag, t.count) for t in summary.top_tags] == [("b", 3), ("a", 2), ("c", 2)]
        assert len(summary.recent) == 5
        assert summary.recent[0].id == str(text.id)

    @pytest.mark.asyncio
    async def test_top_tags_limited(self, registry, listing, owner_id, make_upload):
        tags = ",".join(f"t{i:02d}" for i in range(12))
        await registry.create_document(owner_id, make_upload(), tags=tags)
        summary = await listing.dashboard_summary(owner_id)
        assert [t.tag for t in summary.top_tags] == [f"t{i:02d}" for i in range(10)]
