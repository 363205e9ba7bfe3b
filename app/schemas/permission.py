from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from app.core.constants import PermissionGroup


class PermissionResponse(BaseModel):
    """Response schema for a permission."""
    id: str
    code: str
    name: str
    description: Optional[str] = None
    group: PermissionGroup
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PermissionGroupResponse(BaseModel):
    """Permissions sharing a group."""
    group: PermissionGroup
    permissions: List[PermissionResponse]


class PermissionUpdateRequest(BaseModel):
    """Request schema for updating a permission. The code never changes."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    group: PermissionGroup
