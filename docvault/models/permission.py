"""
Permission Pydantic Models
ACL request/response schemas
"""

import uuid
from datetime import datetime
from typing import List
from pydantic import BaseModel, Field

from docvault.core.permissions import AccessLevel
from docvault.db.models import DocumentPermission as PermissionSQLModel


class SetPermissionRequest(BaseModel):
    """Grant or change a user's access level"""
    user_id: uuid.UUID = Field(..., alias="userId", description="User to grant access to")
    access: str = Field(..., description="Access level: viewer or editor")

    model_config = {"populate_by_name": True}


class PermissionResponse(BaseModel):
    """ACL entry schema"""
    user_id: str
    access: AccessLevel
    granted_at: datetime

    @classmethod
    def from_db_model(cls, perm: PermissionSQLModel) -> "PermissionResponse":
        return cls(
            user_id=str(perm.user_id),
            access=AccessLevel(perm.access_level),
            granted_at=perm.created_at,
        )


class AclResponse(BaseModel):
    """ACL after a mutation"""
    message: str
    acl: List[PermissionResponse]
