# API v1 routes
from fastapi import APIRouter

from docvault.api.v1 import documents, versions
from docvault.models.common import ErrorResponse

# Every route renders failures through the same envelope
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Caller lacks the required capability"},
    404: {"model": ErrorResponse, "description": "Document, version or blob not found"},
    409: {"model": ErrorResponse, "description": "Concurrent modification"},
    503: {"model": ErrorResponse, "description": "Blob storage unavailable"},
}

router = APIRouter(responses=ERROR_RESPONSES)

router.include_router(documents.router, prefix="/documents", tags=["Documents"])
router.include_router(versions.router, prefix="/versions", tags=["Versions"])
