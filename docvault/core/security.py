"""
Security Utilities
Bearer token verification (tokens are issued by the identity service)
"""

import uuid
from typing import Any, Dict

from jose import JWTError, jwt

from docvault.core.config import settings
from docvault.core.exceptions import AuthenticationException


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT token"""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
        return payload
    except JWTError as e:
        raise AuthenticationException(
            message="Invalid token",
            details={"error": str(e)},
        )


def verify_access_token(token: str) -> Dict[str, Any]:
    """Verify an access token and return its payload"""
    payload = decode_token(token)

    token_type = payload.get("type", "access")
    if token_type != "access":
        raise AuthenticationException(
            message="Invalid token type",
            details={"expected": "access", "got": token_type},
        )

    return payload


def user_id_from_token(token: str) -> uuid.UUID:
    """Extract the caller's user id from the token subject"""
    payload = verify_access_token(token)
    subject = payload.get("sub")
    try:
        return uuid.UUID(str(subject))
    except (TypeError, ValueError):
        raise AuthenticationException(
            message="Invalid token subject",
            details={"sub": subject},
        )
