from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from app.core.constants import AccessFor
from app.schemas.permission import PermissionResponse


class RoleResponse(BaseModel):
    """Response schema for a role with its permissions."""
    id: str
    name: str
    description: Optional[str] = None
    access_for: AccessFor
    is_active: bool
    permissions: List[PermissionResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RoleCreateRequest(BaseModel):
    """Request schema for creating a role."""
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    access_for: AccessFor = AccessFor.USER
    permissions: List[str] = Field(default_factory=list, description="Permission ids")


class RoleUpdateRequest(BaseModel):
    """Request schema for updating a role."""
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    access_for: AccessFor


class RoleUpdatePermissionRequest(BaseModel):
    """Request schema for replacing the permissions of a role."""
    permissions: List[str] = Field(..., description="Permission ids")
