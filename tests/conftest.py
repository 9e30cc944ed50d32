"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import os
import uuid

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "docvault-test-secret-key-0123456789abcdef")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./docvault-test.db")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt

from docvault.core.config import settings
from docvault.db.session import close_db, init_db
from docvault.main import app, wire_services
from docvault.services.listing import ListingService
from docvault.services.registry import DocumentRegistry
from docvault.services.uploads import FileUpload
from docvault.storage.filesystem import FilesystemBlobStore


# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (medium speed)"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (slow)"
    )


def pytest_collection_modifyitems(config, items):
    """Add default markers based on test file path"""
    for item in items:
        path = str(item.fspath)
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in path:
            item.add_marker(pytest.mark.e2e)


# ============================================
# STORAGE FIXTURES
# ============================================

@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """
    Fresh SQLite database per test.
    File based so that concurrent sessions see each other's commits.
    """
    factory = await init_db(f"sqlite+aiosqlite:///{tmp_path / 'docvault.db'}", create_tables=True)
    yield factory
    await close_db()


@pytest_asyncio.fixture
async def blob_store(tmp_path):
    """Filesystem blob store rooted in the test's tmp dir"""
    store = FilesystemBlobStore(root=tmp_path / "blobs")
    await store.initialize()
    yield store
    await store.shutdown()


@pytest.fixture
def registry(session_factory, blob_store) -> DocumentRegistry:
    return DocumentRegistry(session_factory, blob_store)


@pytest.fixture
def listing(session_factory) -> ListingService:
    return ListingService(session_factory)


# ============================================
# DATA FIXTURES
# ============================================

@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def sample_pdf() -> bytes:
    """Minimal PDF bytes"""
    return b"%PDF-1.4\n1 0 obj\n<<\n/Type /Catalog\n/Pages 2 0 R\n>>\nendobj\n"


@pytest.fixture
def make_upload(sample_pdf):
    """Factory for in-memory uploads"""

    def _make(filename: str = "report.pdf", mime_type: str = "application/pdf", data: bytes = None) -> FileUpload:
        return FileUpload(filename=filename, mime_type=mime_type, data=sample_pdf if data is None else data)

    return _make


def make_token(user_id: uuid.UUID, token_type: str = "access") -> str:
    """Bearer token as issued by the identity service"""
    return jwt.encode(
        {"sub": str(user_id), "type": token_type},
        settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


@pytest.fixture
def auth_headers():
    """Factory for Authorization headers"""

    def _headers(user_id: uuid.UUID) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _headers


# ============================================
# HTTP CLIENT FIXTURES
# ============================================

@pytest_asyncio.fixture
async def client(session_factory, blob_store) -> AsyncClient:
    """
    Test HTTP client using ASGI transport
    ASGI transport doesn't trigger lifespan, so services are wired here.
    """
    wire_services(app, session_factory, blob_store)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
