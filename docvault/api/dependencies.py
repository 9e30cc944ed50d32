"""
API Dependencies
Common dependencies for API routes
"""

import uuid
from typing import Optional
from fastapi import Header, Request

from docvault.core.security import user_id_from_token
from docvault.core.exceptions import AuthenticationException, ValidationException
from docvault.services.listing import ListingService
from docvault.services.registry import DocumentRegistry


async def get_current_user_id(
    authorization: Optional[str] = Header(None),
) -> uuid.UUID:
    """
    Dependency to get the caller's user id from the JWT bearer token

    Raises:
        AuthenticationException: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationException(message="Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationException(message="Invalid authorization header format")

    return user_id_from_token(token.strip())


def get_registry(request: Request) -> DocumentRegistry:
    """Document registry wired at startup"""
    return request.app.state.registry


def get_listing(request: Request) -> ListingService:
    """Listing service wired at startup"""
    return request.app.state.listing


def parse_uuid(value: str, field: str = "id") -> uuid.UUID:
    """Parse a path identifier, raising ValidationException if malformed"""
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationException(
            message=f"Invalid {field} format",
            details={field: value, "expected_format": "UUID"},
        )
