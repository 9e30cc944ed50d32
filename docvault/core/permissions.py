"""
Permission Service
Document-level capability derivation from ownership and ACL entries
"""

import enum
import uuid
from typing import Any, Iterable, Optional

from docvault.core.logging import get_logger
from docvault.core.exceptions import ForbiddenException, ValidationException
from docvault.monitoring.metrics import access_denied_total

logger = get_logger(__name__)


class AccessLevel(str, enum.Enum):
    """Access level stored on an ACL entry"""

    VIEWER = "viewer"
    EDITOR = "editor"

    @classmethod
    def parse(cls, value: Any) -> "AccessLevel":
        """Parse a raw access level, raising ValidationException if invalid"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationException(
                message="Invalid access level",
                details={"access": value, "allowed": [level.value for level in cls]},
            )


class Capability(str, enum.Enum):
    """Effective capability of a user on a document (derived, never stored)"""

    NONE = "none"
    VIEWER = "viewer"
    EDITOR = "editor"
    OWNER = "owner"


class PermissionChecker:
    """
    Single decision point for view/edit/manage checks.

    Works on any document-like object exposing ``owner_id`` and ``permissions``
    (entries exposing ``user_id`` and ``access_level``).
    """

    @staticmethod
    def capability(document: Any, user_id: Optional[uuid.UUID]) -> Capability:
        """Derive the caller's capability on a document"""
        if user_id is None:
            return Capability.NONE

        if document.owner_id == user_id:
            return Capability.OWNER

        entry = PermissionChecker.find_entry(document.permissions, user_id)
        if entry is not None:
            return Capability(AccessLevel(entry.access_level).value)

        return Capability.NONE

    @staticmethod
    def shared_access(document: Any, user_id: uuid.UUID) -> Optional[AccessLevel]:
        """Access level a non-owner holds through the ACL (None for owners and strangers)"""
        capability = PermissionChecker.capability(document, user_id)
        if capability in (Capability.VIEWER, Capability.EDITOR):
            return AccessLevel(capability.value)
        return None

    @staticmethod
    def find_entry(entries: Iterable[Any], user_id: uuid.UUID) -> Optional[Any]:
        """Return the ACL entry for user_id, if any"""
        for entry in entries:
            if entry.user_id == user_id:
                return entry
        return None

    @staticmethod
    def can_view(capability: Capability) -> bool:
        return capability != Capability.NONE

    @staticmethod
    def can_edit(capability: Capability) -> bool:
        return capability in (Capability.OWNER, Capability.EDITOR)

    @staticmethod
    def can_manage(capability: Capability) -> bool:
        return capability == Capability.OWNER

    @staticmethod
    def require_view(document: Any, user_id: uuid.UUID) -> Capability:
        """
        Require view access or raise ForbiddenException

        Returns:
            The caller's capability
        """
        capability = PermissionChecker.capability(document, user_id)
        if not PermissionChecker.can_view(capability):
            PermissionChecker._deny(document, user_id, "view", "Access denied")
        return capability

    @staticmethod
    def require_edit(document: Any, user_id: uuid.UUID) -> Capability:
        """Require editor or owner capability"""
        capability = PermissionChecker.capability(document, user_id)
        if not PermissionChecker.can_edit(capability):
            PermissionChecker._deny(document, user_id, "edit", "Edit access required")
        return capability

    @staticmethod
    def require_manage(document: Any, user_id: uuid.UUID) -> Capability:
        """Require owner capability (ACL mutation, delete)"""
        capability = PermissionChecker.capability(document, user_id)
        if not PermissionChecker.can_manage(capability):
            PermissionChecker._deny(document, user_id, "manage", "Only the owner can perform this action")
        return capability

    @staticmethod
    def _deny(document: Any, user_id: uuid.UUID, action: str, message: str) -> None:
        access_denied_total.labels(action=action).inc()
        logger.debug(f"User {user_id} denied {action} on document {document.id}")
        raise ForbiddenException(
            message=message,
            details={
                "document_id": str(document.id),
                "required": action,
            },
        )
